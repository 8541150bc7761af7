"""Translate database failures into the marketplace error kinds."""
import logging
from contextlib import contextmanager

from django.db import InterfaceError, OperationalError

from .exceptions import Timeout, Unavailable

logger = logging.getLogger(__name__)

_TIMEOUT_MARKERS = ('timeout', 'timed out', 'locked', 'canceling statement')


@contextmanager
def store_guard(operation):
    """Run a block of store calls, failing fast with Unavailable/Timeout.

    Usable as a ``with`` block or as a decorator.
    """
    try:
        yield
    except OperationalError as exc:
        message = str(exc).lower()
        logger.warning('Store error during %s: %s', operation, exc)
        if any(marker in message for marker in _TIMEOUT_MARKERS):
            raise Timeout() from exc
        raise Unavailable() from exc
    except InterfaceError as exc:
        logger.warning('Store connection lost during %s: %s', operation, exc)
        raise Unavailable() from exc
