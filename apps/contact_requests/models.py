from django.db import models
from django.db.models import Q
from django.conf import settings


class ContactRequest(models.Model):
    """A buyer asking a seller to disclose price and phone for one listing."""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        ACCEPTED = 'accepted', 'Accepted'
        REJECTED = 'rejected', 'Rejected'
        CANCELLED = 'cancelled', 'Cancelled'

    OPEN_STATUSES = (Status.PENDING, Status.ACCEPTED)
    TERMINAL_STATUSES = (Status.ACCEPTED, Status.REJECTED, Status.CANCELLED)

    animal = models.ForeignKey('animals.Animal', on_delete=models.PROTECT, related_name='contact_requests')
    buyer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='sent_requests')
    seller = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='received_requests')
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['animal', 'buyer'],
                condition=Q(status__in=['pending', 'accepted']),
                name='uq_open_request_per_listing_buyer',
            ),
        ]
        indexes = [
            models.Index(fields=['buyer', '-created_at'], name='request_buyer_created_idx'),
            models.Index(fields=['seller', '-created_at'], name='request_seller_created_idx'),
        ]

    def __str__(self):
        return f'Request {self.id} - {self.animal_id} by {self.buyer_id} ({self.status})'

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def counterpart_of(self, uid):
        return self.seller_id if uid == self.buyer_id else self.buyer_id
