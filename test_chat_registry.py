from unittest import mock

import pytest

from apps.chats import registry
from apps.chats.models import Channel
from apps.chats.realtime import broker, inbox_topic
from apps.chats.registry import channel_id_for, get_channel, get_or_create_channel, open_channel_for_request
from apps.common.exceptions import NotFound, Unauthorized
from apps.contact_requests.lifecycle import accept_request, create_request


@pytest.fixture
def accepted_request(animal, buyer_session, seller_session):
    contact_request = create_request(buyer_session, animal.pk)
    return accept_request(seller_session, contact_request.pk)


def test_channel_id_is_deterministic_and_role_independent():
    first = channel_id_for(7, 'buyer-1', 'seller-1')

    assert first == channel_id_for(7, 'buyer-1', 'seller-1')
    assert first == channel_id_for(7, 'seller-1', 'buyer-1')
    assert first != channel_id_for(8, 'buyer-1', 'seller-1')
    assert len(first) == 64


@pytest.mark.django_db
def test_open_channel_requires_accepted_request(animal, buyer, seller, buyer_session, seller_session):
    create_request(buyer_session, animal.pk)

    with pytest.raises(Unauthorized):
        get_or_create_channel(buyer_session, animal.pk, buyer.uid, seller.uid)
    assert Channel.objects.count() == 0


@pytest.mark.django_db
def test_get_or_create_is_idempotent(accepted_request, animal, buyer, seller, buyer_session, seller_session):
    first = get_or_create_channel(buyer_session, animal.pk, buyer.uid, seller.uid)
    again = get_or_create_channel(seller_session, animal.pk, buyer.uid, seller.uid)
    swapped = get_or_create_channel(buyer_session, animal.pk, seller.uid, buyer.uid)

    assert first.pk == again.pk == swapped.pk == channel_id_for(animal.pk, buyer.uid, seller.uid)
    assert Channel.objects.count() == 1
    assert first.seen_by == {buyer.uid: True, seller.uid: False}


@pytest.mark.django_db
def test_swapped_roles_still_store_listing_owner_as_seller(accepted_request, animal, buyer, seller, seller_session):
    channel = get_or_create_channel(seller_session, animal.pk, seller.uid, buyer.uid)

    assert channel.seller_id == seller.uid
    assert channel.buyer_id == buyer.uid
    # The opener has seen it, the counterpart has not.
    assert channel.seen_by == {seller.uid: True, buyer.uid: False}


@pytest.mark.django_db
def test_lost_insert_race_returns_the_winner(accepted_request, animal, buyer, seller, buyer_session):
    winner = Channel.objects.create(
        id=channel_id_for(animal.pk, buyer.uid, seller.uid),
        animal=animal, buyer=buyer, seller=seller,
    )
    real_find = registry._find_channel
    calls = []

    def find_after_first_miss(channel_id):
        calls.append(channel_id)
        return None if len(calls) == 1 else real_find(channel_id)

    with mock.patch.object(registry, '_find_channel', side_effect=find_after_first_miss):
        channel = get_or_create_channel(buyer_session, animal.pk, buyer.uid, seller.uid)

    assert channel.pk == winner.pk
    assert Channel.objects.count() == 1


@pytest.mark.django_db
def test_outsiders_cannot_open_or_read(accepted_request, animal, buyer, seller, buyer_session, stranger_session):
    with pytest.raises(Unauthorized):
        get_or_create_channel(stranger_session, animal.pk, buyer.uid, seller.uid)

    channel = get_or_create_channel(buyer_session, animal.pk, buyer.uid, seller.uid)
    with pytest.raises(Unauthorized):
        get_channel(stranger_session, channel.pk)
    with pytest.raises(NotFound):
        get_channel(buyer_session, 'missing')


@pytest.mark.django_db
def test_seller_must_own_the_listing(accepted_request, animal, buyer, stranger, buyer_session):
    with pytest.raises(Unauthorized):
        get_or_create_channel(buyer_session, animal.pk, buyer.uid, stranger.uid)
    with pytest.raises(Unauthorized):
        get_or_create_channel(buyer_session, animal.pk, buyer.uid, buyer.uid)
    with pytest.raises(NotFound):
        get_or_create_channel(buyer_session, 999999, buyer.uid, stranger.uid)


@pytest.mark.django_db
def test_open_channel_for_request(accepted_request, buyer_session):
    channel = open_channel_for_request(buyer_session, accepted_request.pk)

    assert channel.animal_id == accepted_request.animal_id
    with pytest.raises(NotFound):
        open_channel_for_request(buyer_session, 999999)


@pytest.mark.django_db
def test_channel_creation_wakes_both_inboxes(
    accepted_request, animal, buyer, seller, buyer_session, django_capture_on_commit_callbacks
):
    with mock.patch.object(broker, 'publish') as publish:
        with django_capture_on_commit_callbacks(execute=True):
            get_or_create_channel(buyer_session, animal.pk, buyer.uid, seller.uid)

    topics = {call.args[0] for call in publish.call_args_list}
    assert topics == {inbox_topic(buyer.uid), inbox_topic(seller.uid)}
