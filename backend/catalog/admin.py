from django.contrib import admin
from .models import Component, HighVolumeSku


@admin.register(Component)
class ComponentAdmin(admin.ModelAdmin):
    list_display = ['barcode', 'description', 'mtd_quantity', 'ftp_quantity', 'hstd_quantity', 'tpl_quantity',
                    'quarantine_quantity', 'total_quantity', 'updated_at']
    search_fields = ['barcode', 'description']
    ordering = ['barcode']
    readonly_fields = ['total_quantity', 'created_at', 'updated_at']


@admin.register(HighVolumeSku)
class HighVolumeSkuAdmin(admin.ModelAdmin):
    list_display = ['barcode', 'day', 'location', 'created_at']
    list_filter = ['day']
    search_fields = ['barcode']
    ordering = ['day', 'barcode']
