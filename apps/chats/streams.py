"""Server-sent event endpoints for live chat and inbox snapshots.

Each event carries a complete snapshot; clients replace their view with it.
Closing the HTTP connection cancels the underlying subscription.
"""
import json
import logging

from asgiref.sync import sync_to_async
from django.http import JsonResponse, StreamingHttpResponse
from rest_framework.exceptions import APIException, AuthenticationFailed

from apps.common.session import Session
from apps.users.authentication import IdentityTokenAuthentication
from .serializers import InboxEntrySerializer, MessageRecordSerializer
from .stream import subscribe_messages
from .unread import subscribe_inbox

logger = logging.getLogger(__name__)


def format_event(event, payload):
    return f'event: {event}\ndata: {json.dumps(payload, separators=(",", ":"))}\n\n'


def message_event(snapshot):
    return format_event('messages', {
        'channel': snapshot.channel_id,
        'messages': MessageRecordSerializer(snapshot.messages, many=True).data,
    })


def inbox_event(snapshot):
    return format_event('inbox', {
        'unread_count': snapshot.unread_count,
        'results': InboxEntrySerializer(snapshot.entries, many=True).data,
    })


def _session_for(request):
    result = IdentityTokenAuthentication().authenticate(request)
    if result is None:
        raise AuthenticationFailed('Authentication credentials were not provided.')
    return Session(uid=result[0].pk)


def _error_response(exc):
    code = getattr(exc, 'default_code', 'error')
    return JsonResponse({'code': code, 'message': str(exc.detail)}, status=exc.status_code)


async def _stream(subscription, render):
    async with subscription:
        async for snapshot in subscription:
            yield render(snapshot)


def _event_stream(events):
    response = StreamingHttpResponse(events, content_type='text/event-stream')
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response


async def channel_stream(request, channel_id):
    try:
        session = await sync_to_async(_session_for)(request)
        subscription = await sync_to_async(subscribe_messages)(session, channel_id)
        await subscription.start()
    except APIException as exc:
        return _error_response(exc)

    logger.debug('%s subscribed to channel %s', session.uid, channel_id)
    return _event_stream(_stream(subscription, message_event))


async def inbox_stream(request):
    try:
        session = await sync_to_async(_session_for)(request)
        subscription = subscribe_inbox(session)
        await subscription.start()
    except APIException as exc:
        return _error_response(exc)

    return _event_stream(_stream(subscription, inbox_event))
