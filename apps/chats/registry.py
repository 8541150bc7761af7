"""Channel registry: at most one channel per (listing, buyer, seller)."""
import hashlib
import logging

from django.db import IntegrityError, transaction

from apps.animals.models import Animal
from apps.common.exceptions import NotFound, Unauthorized
from apps.common.store import store_guard
from apps.contact_requests.models import ContactRequest
from .models import Channel
from .realtime import broker, inbox_topic

logger = logging.getLogger(__name__)


def channel_id_for(listing_id, buyer_id, seller_id):
    """Deterministic channel id.

    Participants are sorted before hashing so the id does not depend on which
    party is passed as buyer and which as seller.
    """
    first, second = sorted((str(buyer_id), str(seller_id)))
    payload = f'{listing_id}\n{first}\n{second}'
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()


def _find_channel(channel_id):
    return Channel.objects.select_related('animal', 'buyer', 'seller').filter(pk=channel_id).first()


@store_guard('get channel')
def get_channel(session, channel_id):
    channel = _find_channel(channel_id)
    if channel is None:
        raise NotFound('Chat not found.')
    if not channel.is_participant(session.uid):
        raise Unauthorized()
    return channel


def _insert_channel(channel_id, animal, buyer_id, seller_id, opener):
    counterpart = seller_id if opener == buyer_id else buyer_id
    seen = {opener: True, counterpart: False}
    with transaction.atomic():
        return Channel.objects.create(
            id=channel_id,
            animal=animal,
            buyer_id=buyer_id,
            seller_id=seller_id,
            buyer_seen=seen[buyer_id],
            seller_seen=seen[seller_id],
        )


@store_guard('open channel')
def get_or_create_channel(session, listing_id, buyer_id, seller_id):
    """Return the channel for the triple, creating it on first access.

    Reusing an existing channel needs no request; creating one needs the
    seller to have accepted the buyer's request first.
    """
    if session.uid not in (buyer_id, seller_id):
        raise Unauthorized()
    if buyer_id == seller_id:
        raise Unauthorized('Buyer and seller must be different users.')

    channel_id = channel_id_for(listing_id, buyer_id, seller_id)
    channel = _find_channel(channel_id)
    if channel is not None:
        return channel

    animal = Animal.objects.filter(pk=listing_id).first()
    if animal is None:
        raise NotFound('Listing not found.')
    if animal.seller_id not in (buyer_id, seller_id):
        raise Unauthorized('The seller does not own this listing.')
    if animal.seller_id != seller_id:
        # Roles passed swapped; the listing owner is always the seller.
        buyer_id, seller_id = seller_id, buyer_id

    accepted = ContactRequest.objects.filter(
        animal=animal, buyer_id=buyer_id, status=ContactRequest.Status.ACCEPTED
    ).exists()
    if not accepted:
        raise Unauthorized('Chat opens once the seller accepts your request.')

    try:
        channel = _insert_channel(channel_id, animal, buyer_id, seller_id, opener=session.uid)
    except IntegrityError:
        # Someone else created it between our read and our insert.
        logger.info('Channel %s created concurrently, reusing it', channel_id)
        channel = _find_channel(channel_id)
        if channel is None:
            raise
        return channel

    logger.info('Channel %s created for listing %s by %s', channel_id, animal.pk, session.uid)
    broker.publish_on_commit(inbox_topic(buyer_id), inbox_topic(seller_id))
    return _find_channel(channel_id)


def open_channel_for_request(session, request_id):
    contact_request = ContactRequest.objects.filter(pk=request_id).first()
    if contact_request is None:
        raise NotFound('Request not found.')
    return get_or_create_channel(
        session, contact_request.animal_id, contact_request.buyer_id, contact_request.seller_id
    )
