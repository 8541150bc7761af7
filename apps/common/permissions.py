from rest_framework import permissions


def _is_admin(user):
    return bool(user and (user.is_staff or user.is_superuser))


class IsParticipantOrAdmin(permissions.BasePermission):
    """Buyer or seller on a request/channel (or an admin)."""

    def has_object_permission(self, request, view, obj):
        if _is_admin(request.user):
            return True

        uid = getattr(request.user, 'pk', None)
        return uid is not None and uid in (obj.buyer_id, obj.seller_id)


class IsOwnerOrAdminOrActiveListing(permissions.BasePermission):
    """
    Custom permission for listings that allows:
    - Admin users to do anything
    - Sellers to manage their own listings
    - Anyone to view active listings
    """
    def has_object_permission(self, request, view, obj):
        if _is_admin(request.user):
            return True

        if request.user and request.user.is_authenticated and obj.seller_id == request.user.pk:
            return True

        return obj.is_active and request.method in permissions.SAFE_METHODS
