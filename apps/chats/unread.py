"""Unread tracking and the per-user inbox."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from django.db import DatabaseError
from django.db.models import Q

from apps.common.exceptions import Unavailable
from apps.common.store import store_guard
from .models import Channel
from .realtime import broker, inbox_topic
from .registry import get_channel

logger = logging.getLogger(__name__)


def is_unread(channel, uid):
    return channel.seen_by.get(uid) is False


@store_guard('mark seen')
def mark_seen(session, channel_id):
    channel = get_channel(session, channel_id)
    field = channel.seen_field_for(session.uid)
    if getattr(channel, field):
        return channel

    Channel.objects.filter(pk=channel.pk).update(**{field: True})
    setattr(channel, field, True)
    broker.publish_on_commit(inbox_topic(session.uid))
    return channel


def mark_seen_quietly(session, channel_id):
    """Best-effort ``mark_seen``; store failures are logged, never raised."""
    try:
        mark_seen(session, channel_id)
    except (DatabaseError, Unavailable) as exc:
        logger.warning('Could not mark %s seen for %s: %s', channel_id, session.uid, exc)
        return False
    return True


@dataclass(frozen=True)
class InboxEntry:
    channel_id: str
    animal_id: int
    animal_name: str
    image: Optional[str]
    buyer_id: str
    seller_id: str
    counterpart_id: str
    counterpart_name: str
    last_message: str
    last_updated: datetime
    unread: bool

    @classmethod
    def for_viewer(cls, channel, uid):
        counterpart = channel.seller if uid == channel.buyer_id else channel.buyer
        images = channel.animal.images or []
        return cls(
            channel_id=channel.pk,
            animal_id=channel.animal_id,
            animal_name=channel.animal.animal_name,
            image=images[0] if images else None,
            buyer_id=channel.buyer_id,
            seller_id=channel.seller_id,
            counterpart_id=counterpart.pk,
            counterpart_name=counterpart.name,
            last_message=channel.last_message,
            last_updated=channel.last_updated,
            unread=is_unread(channel, uid),
        )


@dataclass(frozen=True)
class InboxSnapshot:
    uid: str
    entries: Tuple[InboxEntry, ...]

    @property
    def version(self):
        return tuple((e.channel_id, e.last_updated, e.unread) for e in self.entries)

    @property
    def unread_count(self):
        return sum(1 for entry in self.entries if entry.unread)


def _participant_channels(uid):
    return Channel.objects.filter(Q(buyer_id=uid) | Q(seller_id=uid)).select_related(
        'animal', 'buyer', 'seller'
    )


def inbox_snapshot(uid):
    channels = _participant_channels(uid).order_by('-last_updated', 'id')
    return InboxSnapshot(uid=uid, entries=tuple(InboxEntry.for_viewer(c, uid) for c in channels))


@store_guard('load inbox')
def inbox(session):
    return inbox_snapshot(session.uid)


@store_guard('count unread')
def unread_count(session):
    uid = session.uid
    return Channel.objects.filter(
        Q(buyer_id=uid, buyer_seen=False) | Q(seller_id=uid, seller_seen=False)
    ).count()


def subscribe_inbox(session):
    return broker.subscribe(inbox_topic(session.uid), lambda: inbox_snapshot(session.uid))
