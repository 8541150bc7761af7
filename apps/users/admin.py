from django.contrib import admin
from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('uid', 'name', 'phone', 'district', 'created_at')
    search_fields = ('uid', 'name', 'phone')
    readonly_fields = ('uid', 'phone', 'created_at', 'updated_at')
