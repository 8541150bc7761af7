from django.contrib import admin
from .models import Animal


@admin.register(Animal)
class AnimalAdmin(admin.ModelAdmin):
    list_display = ('animal_name', 'sub_type', 'seller', 'price', 'is_active', 'created_at')
    list_filter = ('is_active', 'sub_type')
    search_fields = ('animal_name', 'sub_type', 'description')
    readonly_fields = ('created_at', 'updated_at')
