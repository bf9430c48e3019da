import html

import bleach
from rest_framework import serializers


def _clean(v):
    # strip markup but keep literal characters; the value is compared, not rendered
    return html.unescape(bleach.clean((v or '').strip(), strip=True))


class DuplicateCheckSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    dob = serializers.DateField(required=False, allow_null=True)
    contact = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=32)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    address = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=1024)
    gender = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=20)
    branchId = serializers.UUIDField(required=False, allow_null=True)
    excludePatientId = serializers.UUIDField(required=False, allow_null=True)

    def validate_name(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('name is required')
        return v

    def validate_address(self, v):
        return _clean(v)


class MergeRequestSerializer(serializers.Serializer):
    primaryId = serializers.UUIDField()
    duplicateId = serializers.UUIDField()
