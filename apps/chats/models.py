from django.db import models
from django.conf import settings
from django.utils import timezone


class Channel(models.Model):
    """Two-party conversation about one listing.

    The primary key is derived from (listing, buyer, seller), see
    ``registry.channel_id_for``. Seen flags are stored per role so the map
    always carries exactly the two participant keys.
    """

    id = models.CharField(max_length=64, primary_key=True)
    animal = models.ForeignKey('animals.Animal', on_delete=models.PROTECT, related_name='channels')
    buyer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='buyer_channels')
    seller = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='seller_channels')
    last_message = models.TextField(blank=True)
    last_updated = models.DateTimeField(default=timezone.now)
    buyer_seen = models.BooleanField(default=True)
    seller_seen = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-last_updated']
        indexes = [
            models.Index(fields=['buyer', '-last_updated'], name='channel_buyer_updated_idx'),
            models.Index(fields=['seller', '-last_updated'], name='channel_seller_updated_idx'),
        ]

    def __str__(self):
        return f'Channel {self.id} - {self.animal_id}'

    @property
    def participants(self):
        return (self.buyer_id, self.seller_id)

    @property
    def seen_by(self):
        return {self.buyer_id: self.buyer_seen, self.seller_id: self.seller_seen}

    def is_participant(self, uid):
        return uid in self.participants

    def counterpart_of(self, uid):
        return self.seller_id if uid == self.buyer_id else self.buyer_id

    def seen_field_for(self, uid):
        if uid == self.buyer_id:
            return 'buyer_seen'
        if uid == self.seller_id:
            return 'seller_seen'
        raise ValueError(f'{uid} is not a participant of channel {self.id}')


class Message(models.Model):
    channel = models.ForeignKey(Channel, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='chat_messages')
    text = models.TextField()
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['channel', 'created_at'], name='message_channel_created_idx'),
        ]

    def __str__(self):
        return f'{self.sender_id}: {self.text[:20]}'
