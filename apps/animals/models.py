from django.db import models
from django.conf import settings


class Animal(models.Model):
    """A livestock listing. Media lives in the blob store; we keep URLs only."""

    seller = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='animals')
    animal_name = models.CharField(max_length=150)
    sub_type = models.CharField(max_length=150, blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    age = models.PositiveSmallIntegerField(null=True, blank=True)
    description = models.TextField(blank=True)
    images = models.JSONField(default=list, blank=True)
    video_url = models.URLField(max_length=500, blank=True)
    # Listings are deactivated, never deleted: requests and chats keep pointing at them.
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f'{self.animal_name} ({self.sub_type})' if self.sub_type else self.animal_name

    @property
    def media(self):
        return list(self.images) + ([self.video_url] if self.video_url else [])
