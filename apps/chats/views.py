from rest_framework import viewsets, permissions, status
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.common.permissions import IsParticipantOrAdmin
from apps.common.session import Session
from .models import Channel
from .registry import get_channel, get_or_create_channel, open_channel_for_request
from .serializers import (
    ChannelDetailSerializer,
    ChannelSerializer,
    InboxEntrySerializer,
    MessageRecordSerializer,
    MessageSerializer,
    OpenChannelSerializer,
    SendMessageSerializer,
)
from .stream import append_message, channel_messages
from .unread import inbox, mark_seen, mark_seen_quietly, unread_count


class ChannelViewSet(viewsets.ReadOnlyModelViewSet):
    # Reads go through the registry services; the queryset only feeds the schema.
    queryset = Channel.objects.all().select_related('animal', 'buyer', 'seller')
    serializer_class = ChannelSerializer
    permission_classes = [permissions.IsAuthenticated, IsParticipantOrAdmin]
    pagination_class = None

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return ChannelDetailSerializer
        return ChannelSerializer

    def list(self, request, *args, **kwargs):
        """The caller's inbox, most recently active chat first."""
        snapshot = inbox(Session.from_request(request))
        return Response({
            'unread_count': snapshot.unread_count,
            'results': InboxEntrySerializer(snapshot.entries, many=True).data,
        })

    def retrieve(self, request, *args, **kwargs):
        """When opening a chat, mark it seen for the current user."""
        session = Session.from_request(request)
        channel = get_channel(session, kwargs['pk'])
        self.check_object_permissions(request, channel)
        mark_seen_quietly(session, channel.pk)
        channel.refresh_from_db(fields=['buyer_seen', 'seller_seen'])
        serializer = self.get_serializer(channel)
        return Response(serializer.data)

    @action(detail=False, methods=['post'], url_path='open')
    def open_channel(self, request):
        """Get or create the chat for a request or a (animal, buyer, seller) triple."""
        session = Session.from_request(request)
        params = OpenChannelSerializer(data=request.data)
        params.is_valid(raise_exception=True)
        data = params.validated_data

        if 'request' in data:
            channel = open_channel_for_request(session, data['request'])
        else:
            channel = get_or_create_channel(session, data['animal'], data['buyer'], data['seller'])

        serializer = ChannelSerializer(channel, context={'request': request})
        return Response(serializer.data)

    @action(detail=True, methods=['get', 'post'])
    def messages(self, request, pk=None):
        session = Session.from_request(request)
        if request.method == 'GET':
            snapshot = channel_messages(session, pk)
            return Response(MessageRecordSerializer(snapshot.messages, many=True).data)

        params = SendMessageSerializer(data=request.data)
        params.is_valid(raise_exception=True)
        message = append_message(session, pk, params.validated_data['text'])
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='mark-seen')
    def mark_seen(self, request, pk=None):
        """Mark this chat as seen for the current user."""
        channel = mark_seen(Session.from_request(request), pk)
        return Response({'id': channel.pk, 'seen_by': channel.seen_by})

    @action(detail=False, methods=['get'], url_path='unread-count')
    def unread_count(self, request):
        return Response({'unread_count': unread_count(Session.from_request(request))})
