import logging

from django.core.paginator import Paginator
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.permissions import IsCountAdmin
from .filters import ComponentFilter, HighVolumeSkuFilter
from .label_generator import render_label_sheet_pdf
from .models import Component, HighVolumeSku
from .serializers import (
    ComponentImportSerializer, ComponentSerializer, HighVolumeSkuSerializer, LabelRequestSerializer,
)
from .utils import import_components

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def component_list(request):
    """List components with search (barcode or description), 50 per page"""
    component_filter = ComponentFilter(request.query_params, queryset=Component.objects.all())
    queryset = component_filter.qs.order_by('barcode')

    try:
        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', 50))
    except ValueError:
        return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)

    paginator = Paginator(queryset, max(limit, 1))
    page_obj = paginator.get_page(page)
    serializer = ComponentSerializer(page_obj, many=True)
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def component_detail(request, pk):
    component = get_object_or_404(Component, pk=pk)
    return Response(ComponentSerializer(component).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def component_by_barcode(request, barcode):
    component = Component.objects.filter(barcode=barcode.strip()).first()
    if component is None:
        return Response({'error': f'Component {barcode} not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(ComponentSerializer(component).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCountAdmin])
def component_import(request):
    """Bulk upsert of parsed rows; repeated barcodes are reported, not imported"""
    serializer = ComponentImportSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = import_components(
            serializer.validated_data['rows'],
            location=serializer.validated_data.get('location') or None,
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    result['success'] = True
    return Response(result)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def high_volume_sku_list_create(request):
    """List weekly high-volume SKUs (filter by day) or add one (admin)"""
    if request.method == 'GET':
        sku_filter = HighVolumeSkuFilter(request.query_params, queryset=HighVolumeSku.objects.all())
        serializer = HighVolumeSkuSerializer(sku_filter.qs, many=True)
        return Response(serializer.data)

    if not IsCountAdmin().has_permission(request, None):
        return Response({'error': IsCountAdmin.message}, status=status.HTTP_403_FORBIDDEN)

    serializer = HighVolumeSkuSerializer(data=request.data)
    if serializer.is_valid():
        if HighVolumeSku.objects.filter(
            barcode=serializer.validated_data['barcode'], day=serializer.validated_data['day']
        ).exists():
            return Response(
                {'error': f"{serializer.validated_data['barcode']} is already counted on {serializer.validated_data['day']}"},
                status=status.HTTP_400_BAD_REQUEST
            )
        sku = serializer.save()
        logger.info(f"Added high-volume SKU {sku.barcode} for {sku.day}")
        return Response(HighVolumeSkuSerializer(sku).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsCountAdmin])
def high_volume_sku_detail(request, pk):
    sku = get_object_or_404(HighVolumeSku, pk=pk)
    logger.info(f"Removed high-volume SKU {sku.barcode} from {sku.day}")
    sku.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def generate_labels(request):
    """PDF label sheet for selected components or ad-hoc rows"""
    serializer = LabelRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    items = list(data.get('items') or [])
    component_ids = data.get('component_ids') or []
    if component_ids:
        components = {c.pk: c for c in Component.objects.filter(pk__in=component_ids)}
        # Keep the caller's selection order
        items.extend(
            {'barcode': components[pk].barcode, 'description': components[pk].description}
            for pk in component_ids if pk in components
        )

    try:
        pdf = render_label_sheet_pdf(items, label_size=data['label_size'], include_id=data['include_id'])
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = 'attachment; filename=labels.pdf'
    return response
