from dataclasses import dataclass

from rest_framework.exceptions import NotAuthenticated


@dataclass(frozen=True)
class Session:
    """The acting user for one call into the request/chat services."""

    uid: str

    @classmethod
    def from_request(cls, request):
        user = getattr(request, 'user', None)
        if user is None or not user.is_authenticated:
            raise NotAuthenticated()
        return cls(uid=user.pk)
