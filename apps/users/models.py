from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    # The identity provider's opaque uid is the primary key, so every
    # reference to a user (buyer_id, seller_id, sender_id) is that uid.
    uid = models.CharField(max_length=128, primary_key=True)
    phone = models.CharField(max_length=30, blank=True)
    name = models.CharField(max_length=255, blank=True)
    address = models.CharField(max_length=255, blank=True)
    district = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        if not self.uid:
            self.uid = self.username
        if not self.username:
            self.username = self.uid
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name or self.phone or self.uid
