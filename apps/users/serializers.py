from rest_framework import serializers
from django.contrib.auth import get_user_model

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ('uid', 'phone', 'name', 'address', 'district', 'created_at', 'updated_at')
        # phone comes from the identity provider and is not editable
        read_only_fields = ('uid', 'phone', 'created_at', 'updated_at')


class PublicUserSerializer(serializers.ModelSerializer):
    """What the other party may always see: a name, never the phone."""

    class Meta:
        model = User
        fields = ('uid', 'name', 'district')
        read_only_fields = fields
