import django_filters
from django.db.models import Q
from backend.locations.models import QUANTITY_FIELDS, parse_location
from .models import Component, HighVolumeSku


class ComponentFilter(django_filters.FilterSet):
    """Filter components by barcode/description search"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    barcode = django_filters.CharFilter(field_name='barcode', lookup_expr='exact')
    in_stock_at = django_filters.CharFilter(method='filter_in_stock_at', label='In stock at location')

    class Meta:
        model = Component
        fields = ['search', 'barcode', 'in_stock_at']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(Q(barcode__icontains=value) | Q(description__icontains=value))

    def filter_in_stock_at(self, queryset, name, value):
        location = parse_location(value)
        if location is None:
            return queryset.none()
        return queryset.filter(**{f'{QUANTITY_FIELDS[location]}__gt': 0})


class HighVolumeSkuFilter(django_filters.FilterSet):
    day = django_filters.CharFilter(field_name='day', lookup_expr='iexact')
    barcode = django_filters.CharFilter(field_name='barcode', lookup_expr='icontains')

    class Meta:
        model = HighVolumeSku
        fields = ['day', 'barcode']
