from django.contrib import admin
from .models import CountSession, CountHistory


@admin.register(CountSession)
class CountSessionAdmin(admin.ModelAdmin):
    list_display = ['session_id', 'kind', 'location', 'day', 'completed', 'start_date', 'last_updated']
    list_filter = ['kind', 'location', 'completed']
    search_fields = ['session_id']
    ordering = ['-last_updated']


@admin.register(CountHistory)
class CountHistoryAdmin(admin.ModelAdmin):
    list_display = ['barcode', 'quantity', 'count_type', 'location', 'user_type', 'timestamp']
    list_filter = ['count_type', 'location', 'user_type']
    search_fields = ['barcode', 'session_id']
    ordering = ['-timestamp']
    readonly_fields = ['barcode', 'quantity', 'count_type', 'session_id', 'user_type', 'user', 'source',
                       'timestamp', 'location']
