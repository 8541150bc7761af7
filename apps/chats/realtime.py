"""Live subscriptions over Redis pub/sub.

A ``Subscription`` is an async iterator of full snapshots for one topic
(``channel:<id>`` or ``inbox:<uid>``). Writers call ``publish_on_commit`` and,
once their transaction commits, a wake-up is published on the topic. Every
subscriber, in any process, then re-reads a complete snapshot. Consumers
therefore always replace their view wholesale; a wake-up that finds nothing
new emits nothing.

Subscriptions must be closed (``cancel()``, ``aclose()`` or ``async with``)
to release their Redis connection; a fresh subscription on the same topic
shares no state with a closed one.
"""
import asyncio
import logging
from contextlib import suppress

import redis
import redis.asyncio as aioredis
from asgiref.sync import sync_to_async
from django.conf import settings
from django.db import transaction

from apps.common.exceptions import Unavailable

logger = logging.getLogger(__name__)

WAKE_UP = 'changed'


def channel_topic(channel_id):
    return f'channel:{channel_id}'


def inbox_topic(uid):
    return f'inbox:{uid}'


class Broker:
    """Publishes wake-ups and opens subscriptions on a Redis server.

    The synchronous ``publisher`` is shared by request threads; each
    subscription opens its own asyncio client on the consumer's event loop.
    """

    def __init__(self, url=None, publisher=None, subscriber_factory=None):
        self._url = url
        self._publisher = publisher
        self._subscriber_factory = subscriber_factory

    @property
    def url(self):
        return self._url or settings.REDIS_URL

    @property
    def publisher(self):
        if self._publisher is None:
            self._publisher = redis.Redis.from_url(self.url, decode_responses=True)
        return self._publisher

    def connect_subscriber(self):
        if self._subscriber_factory is not None:
            return self._subscriber_factory()
        return aioredis.from_url(self.url, decode_responses=True)

    def subscriber_count(self, topic):
        return int(dict(self.publisher.pubsub_numsub(topic)).get(topic, 0))

    def publish(self, topic):
        # Runs after commit: the data is already stored, a lost wake-up only
        # delays live views until the next change.
        try:
            self.publisher.publish(topic, WAKE_UP)
        except redis.RedisError as exc:
            logger.warning('Could not publish wake-up on %s: %s', topic, exc)

    def publish_on_commit(self, *topics):
        for topic in topics:
            transaction.on_commit(lambda topic=topic: self.publish(topic))

    def subscribe(self, topic, loader):
        return Subscription(topic, loader, self)


class Subscription:
    """Cancellable async stream of snapshots.

    ``loader`` is a synchronous callable returning a snapshot object with a
    ``version`` attribute; it runs in a worker thread so it may hit the ORM.
    """

    def __init__(self, topic, loader, broker):
        self.topic = topic
        self._loader = loader
        self._broker = broker
        self._wakeup = asyncio.Event()
        self._loop = None
        self._client = None
        self._pubsub = None
        self._reader = None
        self._closed = False
        self._released = False
        self._last_version = None

    @property
    def closed(self):
        return self._closed

    async def start(self):
        """Subscribe on Redis. Called by the first ``__anext__`` if not before."""
        if self._loop is not None:
            return
        self._loop = asyncio.get_running_loop()
        try:
            self._client = self._broker.connect_subscriber()
            self._pubsub = self._client.pubsub()
            await self._pubsub.subscribe(self.topic)
        except redis.RedisError as exc:
            logger.warning('Could not subscribe to %s: %s', self.topic, exc)
            await self.aclose()
            raise Unavailable('Live updates are unavailable. Try again shortly.') from exc

        self._reader = asyncio.ensure_future(self._listen())
        # The first snapshot is emitted without waiting for a publish.
        self._wakeup.set()

    async def _listen(self):
        try:
            async for message in self._pubsub.listen():
                if message['type'] == 'message':
                    self._wakeup.set()
        except redis.RedisError as exc:
            logger.warning('Subscription to %s lost: %s', self.topic, exc)
        self._closed = True
        self._wakeup.set()

    def cancel(self):
        if self._closed:
            return
        self._closed = True
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self._wakeup.set)

    async def aclose(self):
        self.cancel()
        if self._released:
            return
        self._released = True

        if self._reader is not None:
            self._reader.cancel()
            with suppress(asyncio.CancelledError):
                await self._reader
        if self._pubsub is None:
            return
        try:
            await self._pubsub.unsubscribe(self.topic)
            await self._pubsub.aclose()
            await self._client.aclose()
        except redis.RedisError as exc:
            logger.debug('Error closing subscription to %s: %s', self.topic, exc)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._closed:
            await self.start()

        while not self._closed:
            await self._wakeup.wait()
            if self._closed:
                break
            self._wakeup.clear()

            snapshot = await sync_to_async(self._loader)()
            if self._closed:
                break
            if snapshot.version != self._last_version:
                self._last_version = snapshot.version
                return snapshot

        await self.aclose()
        raise StopAsyncIteration

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()


broker = Broker()
