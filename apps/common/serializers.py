"""
Serializers for common app models.
"""
from decimal import Decimal

from rest_framework import serializers
from django.core.exceptions import ValidationError as DjangoValidationError

from .models import ActivityLog, SystemSetting


class ActivityLogSerializer(serializers.ModelSerializer):
    """Audit entries for admin monitoring."""

    user_email = serializers.CharField(source='user.email', read_only=True, allow_null=True)

    class Meta:
        model = ActivityLog
        fields = [
            'id', 'user_email', 'actor_type', 'action_type', 'resource_type',
            'resource_id', 'metadata', 'ip_address', 'created_at',
        ]
        read_only_fields = fields


class SystemSettingSerializer(serializers.ModelSerializer):
    typed_value = serializers.SerializerMethodField()

    class Meta:
        model = SystemSetting
        fields = ['key', 'value', 'value_type', 'description', 'typed_value', 'updated_at']
        read_only_fields = ['typed_value', 'updated_at']
        extra_kwargs = {'key': {'validators': []}}

    def get_typed_value(self, obj):
        try:
            value = obj.typed_value()
        except DjangoValidationError:
            return None
        return str(value) if isinstance(value, Decimal) else value

    def validate(self, attrs):
        candidate = SystemSetting(
            key=attrs.get('key', ''),
            value=attrs.get('value', ''),
            value_type=attrs.get('value_type', SystemSetting.TYPE_STRING)
        )
        try:
            candidate.typed_value()
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.message_dict)
        return attrs
