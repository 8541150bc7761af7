from django.urls import path
from rest_framework.routers import DefaultRouter
from .streams import channel_stream, inbox_stream
from .views import ChannelViewSet

router = DefaultRouter()
router.register('chats', ChannelViewSet, basename='chats')

urlpatterns = [
    path('chats/stream/', inbox_stream, name='chats-inbox-stream'),
    path('chats/<str:channel_id>/stream/', channel_stream, name='chats-channel-stream'),
] + router.urls
