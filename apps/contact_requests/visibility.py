"""Price / contact visibility gate.

Price and the counterpart's phone number are shown only once the seller has
accepted the buyer's request. This is a display rule, not an access-control
boundary.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .models import ContactRequest


@dataclass(frozen=True)
class Disclosure:
    visible: bool
    price: Optional[Decimal] = None
    phone: Optional[str] = None


WITHHELD = Disclosure(visible=False)


def is_visible(contact_request) -> bool:
    return contact_request is not None and contact_request.status == ContactRequest.Status.ACCEPTED


def disclose(contact_request, viewer_uid) -> Disclosure:
    """Price and the *other* party's phone, or nothing at all."""
    if not is_visible(contact_request):
        return WITHHELD

    counterpart = contact_request.seller if viewer_uid == contact_request.buyer_id else contact_request.buyer
    return Disclosure(
        visible=True,
        price=contact_request.animal.price,
        phone=counterpart.phone or None,
    )


def listing_price_for(animal, viewer_uid, contact_request=None):
    """A listing's price as the viewer may see it (``None`` when withheld)."""
    if viewer_uid is not None and animal.seller_id == viewer_uid:
        return animal.price
    return animal.price if is_visible(contact_request) else None
