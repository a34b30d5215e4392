from rest_framework import serializers
from .labels import DEFAULT_LABEL_SIZE, parse_label_size
from .models import Component, HighVolumeSku


class ComponentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Component
        fields = ['id', 'barcode', 'description', 'mtd_quantity', 'ftp_quantity', 'hstd_quantity', 'tpl_quantity',
                  'quarantine_quantity', 'total_quantity', 'created_at', 'updated_at']
        read_only_fields = ['total_quantity', 'created_at', 'updated_at']


class HighVolumeSkuSerializer(serializers.ModelSerializer):
    class Meta:
        model = HighVolumeSku
        fields = ['id', 'barcode', 'day', 'location', 'created_at']
        read_only_fields = ['location', 'created_at']
        validators = []

    def validate_barcode(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Barcode is required")
        return value


class ComponentImportRowSerializer(serializers.Serializer):
    barcode = serializers.CharField(allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    quantity = serializers.IntegerField(required=False, allow_null=True, min_value=0, default=None)


class ComponentImportSerializer(serializers.Serializer):
    location = serializers.CharField(required=False, allow_blank=True, default='')
    rows = ComponentImportRowSerializer(many=True, allow_empty=False)


class LabelItemSerializer(serializers.Serializer):
    barcode = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    description = serializers.CharField(required=False, allow_blank=True, default='')


class LabelRequestSerializer(serializers.Serializer):
    """Either component ids from the catalog or ad-hoc rows, e.g. from an import"""
    component_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    items = LabelItemSerializer(many=True, required=False, default=list)
    label_size = serializers.CharField(required=False, default=DEFAULT_LABEL_SIZE)
    include_id = serializers.BooleanField(required=False, default=True)

    def validate_label_size(self, value):
        try:
            parse_label_size(value)
        except ValueError as e:
            raise serializers.ValidationError(str(e))
        return value

    def validate(self, attrs):
        if not attrs.get('component_ids') and not attrs.get('items'):
            raise serializers.ValidationError("Select at least one component to print.")
        return attrs
