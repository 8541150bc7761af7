from django.contrib import admin
from .models import ContactRequest


@admin.register(ContactRequest)
class ContactRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'animal', 'buyer', 'seller', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('buyer__uid', 'seller__uid', 'animal__animal_name')
    readonly_fields = ('created_at', 'updated_at')
