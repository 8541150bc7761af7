from django.conf import settings
from rest_framework import serializers

from apps.contact_requests.models import ContactRequest
from apps.contact_requests.visibility import listing_price_for
from apps.users.serializers import PublicUserSerializer
from .models import Animal


def _viewer_requests(context):
    """Latest request per listing sent by the viewer, cached for one response."""
    if 'viewer_requests' not in context:
        request = context.get('request')
        latest = {}
        if request and request.user.is_authenticated:
            sent = ContactRequest.objects.filter(buyer=request.user).order_by('created_at', 'id')
            for contact_request in sent:
                latest[contact_request.animal_id] = contact_request
        context['viewer_requests'] = latest
    return context['viewer_requests']


class AnimalSerializer(serializers.ModelSerializer):
    seller = PublicUserSerializer(read_only=True)
    images = serializers.ListField(child=serializers.URLField(max_length=500))
    price = serializers.DecimalField(max_digits=12, decimal_places=2)
    price_visible = serializers.SerializerMethodField()
    my_request = serializers.SerializerMethodField()
    media = serializers.ListField(child=serializers.CharField(), read_only=True)

    class Meta:
        model = Animal
        fields = [
            'id', 'seller', 'animal_name', 'sub_type', 'price', 'price_visible', 'age',
            'description', 'images', 'video_url', 'media', 'is_active', 'my_request',
            'created_at', 'updated_at',
        ]
        read_only_fields = ('seller', 'is_active', 'created_at', 'updated_at')

    def _viewer_uid(self):
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            return request.user.pk
        return None

    def _request_for(self, obj):
        return _viewer_requests(self.context).get(obj.pk)

    def to_representation(self, instance):
        data = super().to_representation(instance)
        # Price stays hidden until the seller accepts the viewer's request.
        price = listing_price_for(instance, self._viewer_uid(), self._request_for(instance))
        data['price'] = None if price is None else data['price']
        return data

    def get_price_visible(self, obj):
        return listing_price_for(obj, self._viewer_uid(), self._request_for(obj)) is not None

    def get_my_request(self, obj):
        contact_request = self._request_for(obj)
        if contact_request is None:
            return None
        return {'id': contact_request.pk, 'status': contact_request.status}

    def validate_images(self, value):
        low = settings.MARKETPLACE['LISTING_MIN_IMAGES']
        high = settings.MARKETPLACE['LISTING_MAX_IMAGES']
        if not low <= len(value) <= high:
            raise serializers.ValidationError(f'A listing needs between {low} and {high} images.')
        return value
