from django.urls import path
from .views import location_list, location_select

urlpatterns = [
    path('locations/', location_list, name='location-list'),
    path('locations/select/', location_select, name='location-select'),
]
