"""
URL configuration for the cycle count backend.

All API routes are mounted under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Cycle Count Admin Panel"
admin.site.site_title = "Cycle Count Admin Portal"
admin.site.index_title = "Component inventory and count sessions"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.locations.urls')),
    path('api/v1/', include('backend.catalog.urls')),
    path('api/v1/', include('backend.counts.urls')),
    path('api/v1/', include('backend.reports.urls')),
]
