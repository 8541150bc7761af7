from unittest import mock

import pytest

from apps.common.exceptions import Conflict, InvalidState, InvalidTransition, NotFound, Unauthorized
from apps.contact_requests import lifecycle
from apps.contact_requests.lifecycle import (
    accept_request,
    cancel_request,
    create_request,
    delete_request,
    get_request,
    received_requests,
    reject_request,
    request_for_listing,
    sent_requests,
)
from apps.contact_requests.models import ContactRequest
from apps.contact_requests.visibility import WITHHELD, disclose, is_visible, listing_price_for

Status = ContactRequest.Status


@pytest.mark.django_db
def test_create_request_starts_pending(animal, buyer, seller, buyer_session):
    contact_request = create_request(buyer_session, animal.pk)

    assert contact_request.status == Status.PENDING
    assert contact_request.buyer_id == buyer.uid
    assert contact_request.seller_id == seller.uid
    assert contact_request.animal_id == animal.pk


@pytest.mark.django_db
def test_create_request_rejects_second_open_request(animal, buyer_session):
    create_request(buyer_session, animal.pk)

    with pytest.raises(InvalidState):
        create_request(buyer_session, animal.pk)
    assert ContactRequest.objects.count() == 1


@pytest.mark.django_db
def test_create_request_allowed_again_after_cancel(animal, buyer_session):
    first = create_request(buyer_session, animal.pk)
    cancel_request(buyer_session, first.pk)

    second = create_request(buyer_session, animal.pk)

    assert second.pk != first.pk
    assert second.status == Status.PENDING


@pytest.mark.django_db
def test_open_request_uniqueness_is_enforced_by_the_store(animal, buyer, seller):
    from django.db import IntegrityError, transaction

    ContactRequest.objects.create(animal=animal, buyer=buyer, seller=seller, status=Status.ACCEPTED)
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            ContactRequest.objects.create(animal=animal, buyer=buyer, seller=seller)


@pytest.mark.django_db
def test_create_request_on_own_or_missing_listing(animal, seller_session, buyer_session):
    with pytest.raises(Unauthorized):
        create_request(seller_session, animal.pk)

    with pytest.raises(NotFound):
        create_request(buyer_session, 999999)

    animal.is_active = False
    animal.save()
    with pytest.raises(NotFound):
        create_request(buyer_session, animal.pk)


@pytest.mark.django_db
@pytest.mark.parametrize('event, target', [
    ('accept', Status.ACCEPTED),
    ('reject', Status.REJECTED),
])
def test_seller_decides_pending_request(animal, buyer_session, seller_session, event, target):
    contact_request = create_request(buyer_session, animal.pk)

    result = lifecycle.transition(seller_session, contact_request.pk, event)

    assert result.status == target
    contact_request.refresh_from_db()
    assert contact_request.status == target


@pytest.mark.django_db
def test_only_the_right_party_may_transition(animal, buyer_session, seller_session, stranger_session):
    contact_request = create_request(buyer_session, animal.pk)

    with pytest.raises(Unauthorized):
        accept_request(buyer_session, contact_request.pk)
    with pytest.raises(Unauthorized):
        cancel_request(seller_session, contact_request.pk)
    with pytest.raises(Unauthorized):
        reject_request(stranger_session, contact_request.pk)

    contact_request.refresh_from_db()
    assert contact_request.status == Status.PENDING


@pytest.mark.django_db
def test_cancelled_request_cannot_be_accepted(animal, buyer_session, seller_session):
    contact_request = create_request(buyer_session, animal.pk)
    cancel_request(buyer_session, contact_request.pk)

    with pytest.raises(InvalidTransition):
        accept_request(seller_session, contact_request.pk)

    contact_request.refresh_from_db()
    assert contact_request.status == Status.CANCELLED


@pytest.mark.django_db
def test_terminal_requests_do_not_move(animal, buyer_session, seller_session):
    contact_request = create_request(buyer_session, animal.pk)
    accept_request(seller_session, contact_request.pk)

    with pytest.raises(InvalidTransition):
        reject_request(seller_session, contact_request.pk)
    with pytest.raises(InvalidTransition):
        cancel_request(buyer_session, contact_request.pk)


@pytest.mark.django_db
def test_unknown_event_is_invalid(animal, buyer_session, seller_session):
    contact_request = create_request(buyer_session, animal.pk)

    with pytest.raises(InvalidTransition):
        lifecycle.transition(seller_session, contact_request.pk, 'archive')


@pytest.mark.django_db
def test_concurrent_accept_and_reject_exactly_one_wins(animal, buyer_session, seller_session):
    contact_request = create_request(buyer_session, animal.pk)
    # Both callers read the request while it was still pending.
    stale = ContactRequest.objects.select_related('animal', 'buyer', 'seller').get(pk=contact_request.pk)

    accept_request(seller_session, contact_request.pk)

    with mock.patch.object(lifecycle, '_load_request', return_value=stale):
        with pytest.raises(Conflict):
            reject_request(seller_session, contact_request.pk)

    contact_request.refresh_from_db()
    assert contact_request.status == Status.ACCEPTED


@pytest.mark.django_db
def test_delete_only_from_terminal_states(animal, buyer_session, seller_session, stranger_session):
    contact_request = create_request(buyer_session, animal.pk)

    with pytest.raises(InvalidTransition):
        delete_request(buyer_session, contact_request.pk)

    reject_request(seller_session, contact_request.pk)
    with pytest.raises(Unauthorized):
        delete_request(stranger_session, contact_request.pk)

    delete_request(buyer_session, contact_request.pk)
    assert not ContactRequest.objects.filter(pk=contact_request.pk).exists()

    with pytest.raises(NotFound):
        delete_request(seller_session, contact_request.pk)


@pytest.mark.django_db
def test_delete_loses_to_concurrent_change(animal, buyer_session, seller_session):
    contact_request = create_request(buyer_session, animal.pk)
    cancel_request(buyer_session, contact_request.pk)
    stale = ContactRequest.objects.get(pk=contact_request.pk)
    stale.status = Status.REJECTED

    with mock.patch.object(lifecycle, '_load_request', return_value=stale):
        with pytest.raises(Conflict):
            delete_request(seller_session, contact_request.pk)

    assert ContactRequest.objects.filter(pk=contact_request.pk).exists()


@pytest.mark.django_db
def test_request_boxes(animal, buyer_session, seller_session, stranger_session):
    mine = create_request(buyer_session, animal.pk)
    other = create_request(stranger_session, animal.pk)
    accept_request(seller_session, other.pk)

    assert [r.pk for r in sent_requests(buyer_session)] == [mine.pk]
    assert {r.pk for r in received_requests(seller_session)} == {mine.pk, other.pk}
    assert [r.pk for r in received_requests(seller_session, status=Status.ACCEPTED)] == [other.pk]
    assert request_for_listing(buyer_session, animal.pk).pk == mine.pk
    assert request_for_listing(seller_session, animal.pk) is None


@pytest.mark.django_db
def test_get_request_is_limited_to_parties(animal, buyer_session, seller_session, stranger_session):
    contact_request = create_request(buyer_session, animal.pk)

    assert get_request(seller_session, contact_request.pk).pk == contact_request.pk
    with pytest.raises(Unauthorized):
        get_request(stranger_session, contact_request.pk)


@pytest.mark.django_db
def test_visibility_only_for_accepted(animal, buyer, seller, buyer_session, seller_session):
    contact_request = create_request(buyer_session, animal.pk)
    assert not is_visible(contact_request)
    assert disclose(contact_request, buyer.uid) is WITHHELD

    accepted = accept_request(seller_session, contact_request.pk)
    assert is_visible(accepted)

    for_buyer = disclose(accepted, buyer.uid)
    assert for_buyer.price == animal.price
    assert for_buyer.phone == seller.phone
    assert disclose(accepted, seller.uid).phone == buyer.phone

    for status in (Status.PENDING, Status.REJECTED, Status.CANCELLED):
        accepted.status = status
        assert not is_visible(accepted)
    assert not is_visible(None)


@pytest.mark.django_db
def test_listing_price_for_viewer(animal, buyer, seller, buyer_session, seller_session):
    assert listing_price_for(animal, seller.uid) == animal.price
    assert listing_price_for(animal, buyer.uid) is None
    assert listing_price_for(animal, None) is None

    contact_request = create_request(buyer_session, animal.pk)
    assert listing_price_for(animal, buyer.uid, contact_request) is None

    accepted = accept_request(seller_session, contact_request.pk)
    assert listing_price_for(animal, buyer.uid, accepted) == animal.price


@pytest.mark.django_db
def test_lost_create_race_is_a_conflict(animal, buyer_session):
    from django.db import IntegrityError

    with mock.patch.object(ContactRequest.objects, 'create', side_effect=IntegrityError('uq_open_request')):
        with pytest.raises(Conflict):
            create_request(buyer_session, animal.pk)

    assert ContactRequest.objects.count() == 0


@pytest.mark.django_db
def test_request_for_listing_maps_store_failures(animal, buyer_session):
    from django.db import OperationalError

    from apps.common.exceptions import Timeout, Unavailable

    with mock.patch.object(ContactRequest.objects, 'filter', side_effect=OperationalError('database is locked')):
        with pytest.raises(Timeout):
            request_for_listing(buyer_session, animal.pk)

    with mock.patch.object(ContactRequest.objects, 'filter', side_effect=OperationalError('could not connect')):
        with pytest.raises(Unavailable):
            request_for_listing(buyer_session, animal.pk)
