"""Message stream: append-only ordered log per channel, plus live snapshots."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Tuple

from django.db import transaction
from django.utils import timezone

from apps.common.exceptions import EmptyMessage, NotFound, Unauthorized
from apps.common.store import store_guard
from .models import Channel, Message
from .realtime import broker, channel_topic, inbox_topic
from .registry import get_channel

logger = logging.getLogger(__name__)

_TICK = timedelta(microseconds=1)


@dataclass(frozen=True)
class MessageRecord:
    id: int
    channel_id: str
    sender_id: str
    text: str
    created_at: datetime

    @classmethod
    def from_model(cls, message):
        return cls(
            id=message.pk,
            channel_id=message.channel_id,
            sender_id=message.sender_id,
            text=message.text,
            created_at=message.created_at,
        )


@dataclass(frozen=True)
class MessageSnapshot:
    """The complete, ordered message list of a channel at one point in time."""

    channel_id: str
    messages: Tuple[MessageRecord, ...]

    @property
    def version(self):
        return tuple(message.id for message in self.messages)


def ordered_messages(messages):
    """De-duplicate by id (last copy wins) and sort by (created_at, id)."""
    by_id = {}
    for message in messages:
        by_id[message.id] = message
    return tuple(sorted(by_id.values(), key=lambda m: (m.created_at, m.id)))


def _next_timestamp(channel):
    now = timezone.now()
    latest = (
        Message.objects.filter(channel=channel)
        .order_by('-created_at')
        .values_list('created_at', flat=True)
        .first()
    )
    if latest is not None and now <= latest:
        return latest + _TICK
    return now


@store_guard('send message')
def append_message(session, channel_id, text):
    text = (text or '').strip()
    if not text:
        raise EmptyMessage()

    with transaction.atomic():
        channel = Channel.objects.select_for_update().filter(pk=channel_id).first()
        if channel is None:
            raise NotFound('Chat not found.')
        if not channel.is_participant(session.uid):
            raise Unauthorized()

        created_at = _next_timestamp(channel)
        message = Message.objects.create(
            channel=channel, sender_id=session.uid, text=text, created_at=created_at
        )

        channel.last_message = text
        channel.last_updated = created_at
        setattr(channel, channel.seen_field_for(session.uid), True)
        setattr(channel, channel.seen_field_for(channel.counterpart_of(session.uid)), False)
        channel.save(update_fields=['last_message', 'last_updated', 'buyer_seen', 'seller_seen'])

        broker.publish_on_commit(
            channel_topic(channel.pk), inbox_topic(channel.buyer_id), inbox_topic(channel.seller_id)
        )

    logger.debug('Message %s appended to %s by %s', message.pk, channel_id, session.uid)
    return message


def message_snapshot(channel_id):
    records = (MessageRecord.from_model(m) for m in Message.objects.filter(channel_id=channel_id))
    return MessageSnapshot(channel_id=channel_id, messages=ordered_messages(records))


@store_guard('read messages')
def channel_messages(session, channel_id):
    get_channel(session, channel_id)
    return message_snapshot(channel_id)


def subscribe_messages(session, channel_id):
    """Live snapshots of a channel's messages for one of its participants.

    Must be called from synchronous code (or via ``sync_to_async``) since it
    checks membership against the store.
    """
    get_channel(session, channel_id)
    return broker.subscribe(channel_topic(channel_id), lambda: message_snapshot(channel_id))
