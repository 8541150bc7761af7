"""Contact request lifecycle.

    pending --accept--> accepted     (seller)
    pending --reject--> rejected     (seller)
    pending --cancel--> cancelled    (buyer)
    accepted/rejected/cancelled --delete--> removed   (either party)

Every status write is a single guarded UPDATE/DELETE on the expected prior
status, so two concurrent transitions on the same request can never both
commit. Uniqueness of open requests per (listing, buyer) is enforced by a
conditional unique constraint rather than by the pre-check alone.
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.animals.models import Animal
from apps.common.exceptions import Conflict, InvalidState, InvalidTransition, NotFound, Unauthorized
from apps.common.store import store_guard
from .models import ContactRequest

logger = logging.getLogger(__name__)

Status = ContactRequest.Status

BUYER = 'buyer'
SELLER = 'seller'
EITHER = 'either'

# event -> (required prior status, new status, actor)
TRANSITIONS = {
    'accept': (Status.PENDING, Status.ACCEPTED, SELLER),
    'reject': (Status.PENDING, Status.REJECTED, SELLER),
    'cancel': (Status.PENDING, Status.CANCELLED, BUYER),
}


def _load_request(request_id):
    contact_request = (
        ContactRequest.objects.select_related('animal', 'buyer', 'seller')
        .filter(pk=request_id)
        .first()
    )
    if contact_request is None:
        raise NotFound('Request not found.')
    return contact_request


def _authorize(session, contact_request, actor):
    allowed = {
        BUYER: (contact_request.buyer_id,),
        SELLER: (contact_request.seller_id,),
        EITHER: (contact_request.buyer_id, contact_request.seller_id),
    }[actor]
    if session.uid not in allowed:
        raise Unauthorized(f'Only the {actor} may do this.' if actor != EITHER else None)


@store_guard('create request')
def create_request(session, listing_id):
    animal = Animal.objects.filter(pk=listing_id, is_active=True).first()
    if animal is None:
        raise NotFound('Listing not found.')
    if animal.seller_id == session.uid:
        raise Unauthorized('You cannot request contact on your own listing.')

    open_exists = ContactRequest.objects.filter(
        animal=animal, buyer_id=session.uid, status__in=ContactRequest.OPEN_STATUSES
    ).exists()
    if open_exists:
        raise InvalidState()

    try:
        with transaction.atomic():
            contact_request = ContactRequest.objects.create(
                animal=animal,
                buyer_id=session.uid,
                seller_id=animal.seller_id,
                status=Status.PENDING,
            )
    except IntegrityError:
        # A concurrent create for the same pair won the unique constraint.
        logger.info('Lost create race for listing %s buyer %s', animal.pk, session.uid)
        raise Conflict('A request for this listing was just created.')

    logger.info('Request %s created for listing %s by %s', contact_request.pk, animal.pk, session.uid)
    return _load_request(contact_request.pk)


def _commit_transition(contact_request, event):
    expected, target, _actor = TRANSITIONS[event]
    if contact_request.status != expected:
        raise InvalidTransition(f'Cannot {event} a request that is {contact_request.status}.')

    updated = ContactRequest.objects.filter(pk=contact_request.pk, status=expected).update(
        status=target, updated_at=timezone.now()
    )
    if not updated:
        logger.info('Request %s: %s lost to a concurrent change', contact_request.pk, event)
        raise Conflict()

    contact_request.status = target
    logger.info('Request %s %s -> %s', contact_request.pk, expected, target)
    return contact_request


@store_guard('request transition')
def transition(session, request_id, event):
    if event not in TRANSITIONS:
        raise InvalidTransition(f'Unknown event {event!r}.')
    contact_request = _load_request(request_id)
    _authorize(session, contact_request, TRANSITIONS[event][2])
    return _commit_transition(contact_request, event)


def accept_request(session, request_id):
    return transition(session, request_id, 'accept')


def reject_request(session, request_id):
    return transition(session, request_id, 'reject')


def cancel_request(session, request_id):
    return transition(session, request_id, 'cancel')


@store_guard('delete request')
def delete_request(session, request_id):
    contact_request = _load_request(request_id)
    _authorize(session, contact_request, EITHER)
    if not contact_request.is_terminal:
        raise InvalidTransition('Only accepted, rejected or cancelled requests can be deleted.')

    deleted, _ = ContactRequest.objects.filter(
        pk=contact_request.pk, status=contact_request.status
    ).delete()
    if not deleted:
        raise Conflict()
    logger.info('Request %s deleted by %s', request_id, session.uid)


def _requests_where(status=None, **filters):
    qs = ContactRequest.objects.filter(**filters).select_related('animal', 'buyer', 'seller')
    if status:
        qs = qs.filter(status=status)
    return list(qs)


@store_guard('list requests')
def sent_requests(session, status=None):
    return _requests_where(status, buyer_id=session.uid)


@store_guard('list requests')
def received_requests(session, status=None):
    return _requests_where(status, seller_id=session.uid)


@store_guard('find request')
def request_for_listing(session, listing_id):
    """The viewer's most recent request on a listing, or ``None``."""
    return (
        ContactRequest.objects.filter(animal_id=listing_id, buyer_id=session.uid)
        .select_related('animal', 'buyer', 'seller')
        .first()
    )


@store_guard('get request')
def get_request(session, request_id):
    contact_request = _load_request(request_id)
    _authorize(session, contact_request, EITHER)
    return contact_request
