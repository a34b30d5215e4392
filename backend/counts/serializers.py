from rest_framework import serializers

from .scopes import CountScope


class CountScopeSerializer(serializers.Serializer):
    """Raw scope fields; CountScope.build does the domain validation"""
    location = serializers.CharField(required=False, allow_blank=True, default='')
    kind = serializers.CharField(required=False, allow_blank=True, default='monthly')
    day = serializers.CharField(required=False, allow_blank=True, default='')
    date = serializers.CharField(required=False, allow_blank=True, default='')

    def build_scope(self):
        data = self.validated_data
        return CountScope.build(
            data.get('location'),
            data.get('kind') or 'monthly',
            day=data.get('day') or None,
            on_date=data.get('date') or None,
        )


class SubmitCountSerializer(CountScopeSerializer):
    barcode = serializers.CharField(required=False, allow_blank=True, default='')
    quantity = serializers.CharField(required=False, allow_blank=True, default='')
    # null: ask on conflict; true: override; false: decline
    override = serializers.BooleanField(required=False, allow_null=True, default=None)


class StartSessionSerializer(CountScopeSerializer):
    progress = serializers.DictField(required=False, default=dict)


class ResetSessionSerializer(CountScopeSerializer):
    confirm = serializers.BooleanField(required=False, default=False)


class RemoveSkuSerializer(CountScopeSerializer):
    barcode = serializers.CharField()


class ClearHistorySerializer(serializers.Serializer):
    barcode = serializers.CharField()
    location = serializers.CharField()


class HistoryQuerySerializer(serializers.Serializer):
    barcode = serializers.CharField(required=False)
    location = serializers.CharField(required=False)
    session_id = serializers.CharField(required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)


class SessionRecordSerializer(serializers.Serializer):
    session_id = serializers.CharField()
    kind = serializers.CharField()
    location = serializers.CharField()
    day = serializers.CharField(allow_blank=True)
    period_start = serializers.DateField(allow_null=True)
    progress = serializers.DictField(child=serializers.IntegerField())
    completed = serializers.BooleanField()
    user_type = serializers.CharField()
    start_date = serializers.DateTimeField(allow_null=True)
    last_updated = serializers.DateTimeField(allow_null=True)
    label = serializers.CharField(read_only=True)


class HistoryEntrySerializer(serializers.Serializer):
    id = serializers.CharField(allow_null=True)
    barcode = serializers.CharField()
    quantity = serializers.IntegerField()
    count_type = serializers.CharField()
    session_id = serializers.CharField()
    location = serializers.CharField()
    user_type = serializers.CharField()
    source = serializers.CharField(allow_blank=True)
    timestamp = serializers.DateTimeField(allow_null=True)
