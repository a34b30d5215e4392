from django.urls import path
from .views import (
    session_status, session_start, session_reset, session_remove_sku,
    submit_count, history_list, history_source, history_clear,
)

urlpatterns = [
    # Sessions
    path('counts/sessions/', session_status, name='count-session-status'),
    path('counts/sessions/start/', session_start, name='count-session-start'),
    path('counts/sessions/reset/', session_reset, name='count-session-reset'),
    path('counts/sessions/remove-sku/', session_remove_sku, name='count-session-remove-sku'),

    # Scans
    path('counts/submit/', submit_count, name='count-submit'),

    # History
    path('counts/history/', history_list, name='count-history-list'),
    path('counts/history/source/', history_source, name='count-history-source'),
    path('counts/history/clear/', history_clear, name='count-history-clear'),
]
