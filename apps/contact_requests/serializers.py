from django.db.models import Q
from rest_framework import serializers

from apps.chats.models import Channel
from apps.chats.registry import channel_id_for
from apps.users.serializers import PublicUserSerializer
from .models import ContactRequest
from .visibility import disclose


class AnimalSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    animal_name = serializers.CharField()
    sub_type = serializers.CharField()
    age = serializers.IntegerField(allow_null=True)
    is_active = serializers.BooleanField()
    image = serializers.SerializerMethodField()

    def get_image(self, obj):
        return obj.images[0] if obj.images else None


class ContactRequestSerializer(serializers.ModelSerializer):
    animal = AnimalSummarySerializer(read_only=True)
    buyer = PublicUserSerializer(read_only=True)
    seller = PublicUserSerializer(read_only=True)
    visible = serializers.SerializerMethodField()
    price = serializers.SerializerMethodField()
    counterpart_phone = serializers.SerializerMethodField()
    chat = serializers.SerializerMethodField()

    class Meta:
        model = ContactRequest
        fields = (
            'id', 'animal', 'buyer', 'seller', 'status', 'visible', 'price',
            'counterpart_phone', 'chat', 'created_at', 'updated_at',
        )
        read_only_fields = fields

    def _viewer_uid(self):
        request = self.context.get('request')
        return request.user.pk if request else None

    def _disclosure(self, obj):
        return disclose(obj, self._viewer_uid())

    def _viewer_channels(self):
        if 'viewer_channels' not in self.context:
            uid = self._viewer_uid()
            channels = Channel.objects.filter(Q(buyer_id=uid) | Q(seller_id=uid)) if uid else []
            self.context['viewer_channels'] = {channel.pk: channel for channel in channels}
        return self.context['viewer_channels']

    def get_visible(self, obj):
        return self._disclosure(obj).visible

    def get_price(self, obj):
        price = self._disclosure(obj).price
        return None if price is None else str(price)

    def get_counterpart_phone(self, obj):
        return self._disclosure(obj).phone

    def get_chat(self, obj):
        channel_id = channel_id_for(obj.animal_id, obj.buyer_id, obj.seller_id)
        channel = self._viewer_channels().get(channel_id)
        if channel is None:
            return None
        return {'id': channel.pk, 'unread': channel.seen_by.get(self._viewer_uid()) is False}


class CreateContactRequestSerializer(serializers.Serializer):
    animal = serializers.IntegerField()
