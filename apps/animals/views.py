import logging

from django.db.models import Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.common.exceptions import Unauthorized
from apps.common.permissions import IsOwnerOrAdminOrActiveListing
from .models import Animal
from .serializers import AnimalSerializer

logger = logging.getLogger(__name__)


class AnimalViewSet(viewsets.ModelViewSet):
    queryset = Animal.objects.all().select_related('seller')
    serializer_class = AnimalSerializer
    http_method_names = ['get', 'post', 'head', 'options']

    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    # No price filter: filtering on a withheld price would leak it.
    filterset_fields = {
        'sub_type': ['exact'],
        'seller': ['exact'],
    }
    search_fields = ['animal_name', 'sub_type', 'description']
    ordering_fields = ['created_at']

    def get_permissions(self):
        if self.action == 'retrieve':
            return [permissions.IsAuthenticated(), IsOwnerOrAdminOrActiveListing()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        qs = self.queryset.order_by('-created_at')
        user = self.request.user

        if self.action == 'list':
            return qs.filter(is_active=True)
        if self.action in ('retrieve', 'activate', 'deactivate'):
            # Owners still see their own deactivated listings
            return qs.filter(Q(is_active=True) | Q(seller=user))
        return qs.filter(seller=user)

    def perform_create(self, serializer):
        animal = serializer.save(seller=self.request.user)
        logger.info('Listing %s created by %s', animal.pk, self.request.user.pk)

    def _set_active(self, request, active):
        animal = self.get_object()
        if animal.seller_id != request.user.pk:
            raise Unauthorized('Only the seller may change whether this listing is on the market.')
        if animal.is_active != active:
            animal.is_active = active
            animal.save(update_fields=['is_active', 'updated_at'])
            logger.info('Listing %s %s', animal.pk, 'activated' if active else 'deactivated')
        return Response(self.get_serializer(animal).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'])
    def activate(self, request, pk=None):
        """Put a deactivated listing back on the market."""
        return self._set_active(request, True)

    @action(detail=True, methods=['post'])
    def deactivate(self, request, pk=None):
        """Take a listing off the market. Requests and chats keep referring to it."""
        return self._set_active(request, False)

    @action(detail=False, methods=['get'])
    def mine(self, request):
        animals = self.filter_queryset(self.get_queryset())
        serializer = self.get_serializer(animals, many=True)
        return Response(serializer.data)
