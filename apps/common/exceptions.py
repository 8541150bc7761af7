"""Error kinds raised by the marketplace services.

Services raise these and let them propagate; the DRF exception handler below
renders them as ``{"code": ..., "message": ...}`` so clients can tell failures
apart.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class MarketplaceError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The request could not be completed.'
    default_code = 'marketplace_error'


class InvalidTransition(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This status change is not allowed from the current state.'
    default_code = 'invalid_transition'


class InvalidState(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'An open request already exists for this listing.'
    default_code = 'invalid_state'


class Conflict(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Another change was committed first. Reload and try again.'
    default_code = 'conflict'


class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class EmptyMessage(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Message text cannot be empty.'
    default_code = 'empty_message'


class Unauthorized(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You are not a party to this request or chat.'
    default_code = 'unauthorized'


class Unavailable(MarketplaceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The data store is unavailable. Try again shortly.'
    default_code = 'unavailable'


class Timeout(Unavailable):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    default_detail = 'The data store did not answer in time.'
    default_code = 'timeout'


def marketplace_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None or not isinstance(exc, MarketplaceError):
        return response

    view = context.get('view')
    logger.info('%s failed in %s: %s', exc.default_code, type(view).__name__, exc.detail)
    response.data = {'code': exc.default_code, 'message': str(exc.detail)}
    return response
