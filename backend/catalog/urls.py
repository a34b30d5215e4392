from django.urls import path
from .views import (
    component_list, component_detail, component_by_barcode, component_import,
    high_volume_sku_list_create, high_volume_sku_detail,
    generate_labels,
)

urlpatterns = [
    # Component endpoints
    path('components/', component_list, name='component-list'),
    path('components/<int:pk>/', component_detail, name='component-detail'),
    path('components/by-barcode/<str:barcode>/', component_by_barcode, name='component-by-barcode'),
    path('components/import/', component_import, name='component-import'),

    # Weekly high-volume SKU endpoints
    path('high-volume-skus/', high_volume_sku_list_create, name='high-volume-sku-list-create'),
    path('high-volume-skus/<int:pk>/', high_volume_sku_detail, name='high-volume-sku-detail'),

    # Label sheets
    path('labels/', generate_labels, name='generate-labels'),
]
