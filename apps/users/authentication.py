import logging

from django.contrib.auth import get_user_model
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken
from rest_framework_simplejwt.settings import api_settings

logger = logging.getLogger(__name__)

User = get_user_model()


def ensure_profile(uid, phone=''):
    """Return the user for ``uid``, creating an empty profile on first login."""
    user, created = User.objects.get_or_create(
        uid=uid,
        defaults={'username': uid, 'phone': phone or ''},
    )
    if created:
        user.set_unusable_password()
        user.save(update_fields=['password'])
        logger.info('Created profile for %s on first login', uid)
    return user


class IdentityTokenAuthentication(JWTAuthentication):
    """Verify identity-provider tokens and map the ``uid`` claim to a user.

    The token is issued after phone OTP verification elsewhere; here we only
    check its signature and expiry, then load (or lazily create) the profile.
    """

    def get_user(self, validated_token):
        try:
            uid = validated_token[api_settings.USER_ID_CLAIM]
        except KeyError:
            raise InvalidToken('Token contained no recognizable user identification')

        user = ensure_profile(str(uid), validated_token.get('phone', ''))
        if not user.is_active:
            raise AuthenticationFailed('User is inactive', code='user_inactive')
        return user
