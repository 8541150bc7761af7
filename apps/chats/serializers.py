from django.conf import settings
from rest_framework import serializers

from apps.users.serializers import PublicUserSerializer
from .models import Channel, Message


class MessageSerializer(serializers.ModelSerializer):
    sender = serializers.ReadOnlyField(source='sender_id')
    channel = serializers.ReadOnlyField(source='channel_id')

    class Meta:
        model = Message
        fields = ('id', 'channel', 'sender', 'text', 'created_at')
        read_only_fields = fields


class MessageRecordSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    channel = serializers.CharField(source='channel_id')
    sender = serializers.CharField(source='sender_id')
    text = serializers.CharField()
    created_at = serializers.DateTimeField()


class SendMessageSerializer(serializers.Serializer):
    # Blank text is rejected by the stream itself with an EmptyMessage error.
    text = serializers.CharField(
        allow_blank=True,
        trim_whitespace=False,
        max_length=settings.MARKETPLACE['CHAT_MESSAGE_MAX_LENGTH'],
    )


class ChannelSerializer(serializers.ModelSerializer):
    buyer = PublicUserSerializer(read_only=True)
    seller = PublicUserSerializer(read_only=True)
    animal_name = serializers.CharField(source='animal.animal_name', read_only=True)
    participants = serializers.SerializerMethodField()
    seen_by = serializers.SerializerMethodField()
    unread = serializers.SerializerMethodField()

    class Meta:
        model = Channel
        fields = (
            'id', 'animal', 'animal_name', 'buyer', 'seller', 'participants',
            'last_message', 'last_updated', 'seen_by', 'unread', 'created_at',
        )
        read_only_fields = fields

    def get_participants(self, obj):
        return list(obj.participants)

    def get_seen_by(self, obj):
        return obj.seen_by

    def get_unread(self, obj):
        request = self.context.get('request')
        if not request or not request.user.is_authenticated:
            return False
        return obj.seen_by.get(request.user.pk) is False


class ChannelDetailSerializer(ChannelSerializer):
    messages = MessageSerializer(many=True, read_only=True)

    class Meta(ChannelSerializer.Meta):
        fields = ChannelSerializer.Meta.fields + ('messages',)
        read_only_fields = fields


class OpenChannelSerializer(serializers.Serializer):
    """Either a request id, or the full (animal, buyer, seller) triple."""

    request = serializers.IntegerField(required=False)
    animal = serializers.IntegerField(required=False)
    buyer = serializers.CharField(required=False)
    seller = serializers.CharField(required=False)

    def validate(self, data):
        if 'request' in data:
            return data
        missing = [name for name in ('animal', 'buyer', 'seller') if not data.get(name)]
        if missing:
            raise serializers.ValidationError(
                {name: 'This field is required when no request is given.' for name in missing}
            )
        return data


class InboxEntrySerializer(serializers.Serializer):
    id = serializers.CharField(source='channel_id')
    animal = serializers.IntegerField(source='animal_id')
    animal_name = serializers.CharField()
    image = serializers.CharField(allow_null=True)
    buyer = serializers.CharField(source='buyer_id')
    seller = serializers.CharField(source='seller_id')
    counterpart = serializers.CharField(source='counterpart_id')
    counterpart_name = serializers.CharField()
    last_message = serializers.CharField()
    last_updated = serializers.DateTimeField()
    unread = serializers.BooleanField()
