from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from apps.common.session import Session
from .lifecycle import (
    accept_request,
    cancel_request,
    create_request,
    delete_request,
    get_request,
    received_requests,
    reject_request,
    request_for_listing,
    sent_requests,
)
from .models import ContactRequest
from .serializers import ContactRequestSerializer, CreateContactRequestSerializer

BOXES = {'sent': sent_requests, 'received': received_requests}


class ContactRequestViewSet(viewsets.GenericViewSet):
    queryset = ContactRequest.objects.all().select_related('animal', 'buyer', 'seller')
    serializer_class = ContactRequestSerializer
    pagination_class = None
    lookup_value_regex = r'\d+'

    def _respond(self, contact_request, code=status.HTTP_200_OK):
        return Response(self.get_serializer(contact_request).data, status=code)

    def list(self, request):
        """Requests the caller sent (``?box=sent``, default) or received (``?box=received``)."""
        box = request.query_params.get('box', 'sent')
        if box not in BOXES:
            raise ValidationError({'box': f'Must be one of {sorted(BOXES)}.'})

        status_param = request.query_params.get('status')
        if status_param and status_param not in ContactRequest.Status.values:
            raise ValidationError({'status': f'Must be one of {ContactRequest.Status.values}.'})

        requests = BOXES[box](Session.from_request(request), status=status_param)
        return Response(self.get_serializer(requests, many=True).data)

    def create(self, request):
        params = CreateContactRequestSerializer(data=request.data)
        params.is_valid(raise_exception=True)
        contact_request = create_request(Session.from_request(request), params.validated_data['animal'])
        return self._respond(contact_request, status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return self._respond(get_request(Session.from_request(request), pk))

    def destroy(self, request, pk=None):
        delete_request(Session.from_request(request), pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def accept(self, request, pk=None):
        return self._respond(accept_request(Session.from_request(request), pk))

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        return self._respond(reject_request(Session.from_request(request), pk))

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        return self._respond(cancel_request(Session.from_request(request), pk))

    @action(detail=False, methods=['get'], url_path=r'for-listing/(?P<animal_id>\d+)')
    def for_listing(self, request, animal_id=None):
        """The caller's latest request on one listing, or ``null``."""
        contact_request = request_for_listing(Session.from_request(request), int(animal_id))
        if contact_request is None:
            return Response(None)
        return self._respond(contact_request)
