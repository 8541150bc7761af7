from django.contrib import admin
from .models import Channel, Message


class MessageInline(admin.TabularInline):
    model = Message
    extra = 0
    readonly_fields = ('sender', 'text', 'created_at')
    can_delete = False


@admin.register(Channel)
class ChannelAdmin(admin.ModelAdmin):
    list_display = ('id', 'animal', 'buyer', 'seller', 'last_updated', 'buyer_seen', 'seller_seen')
    search_fields = ('id', 'buyer__uid', 'seller__uid')
    readonly_fields = ('id', 'created_at')
    inlines = [MessageInline]
