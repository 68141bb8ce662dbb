import re

from rest_framework import serializers

from .common import clean_text

PHONE_RE = re.compile(r'^\d{10}$')
GENDERS = ['Male', 'Female', 'Other']


class _PatientFieldsMixin:
    def validate_name(self, v):
        v = clean_text(v)
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v

    def validate_phone(self, v):
        v = (v or '').strip()
        if not PHONE_RE.match(v):
            raise serializers.ValidationError('Phone number must be 10 digits')
        return v

    def validate_symptoms(self, v):
        return clean_text(v)


class RegisterSerializer(_PatientFieldsMixin, serializers.Serializer):
    name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=20)
    department = serializers.CharField(required=False, allow_blank=True, max_length=100)
    age = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=130)
    gender = serializers.ChoiceField(choices=GENDERS, required=False, allow_blank=True)
    symptoms = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    preferredDoctorId = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class TokenUpdateSerializer(_PatientFieldsMixin, serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    phone = serializers.CharField(max_length=20, required=False)
    age = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=130)
    gender = serializers.ChoiceField(choices=GENDERS, required=False, allow_blank=True)
    symptoms = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class DepartmentQuerySerializer(serializers.Serializer):
    department = serializers.CharField(required=False, allow_blank=True, max_length=100)


class AdminPatientsQuerySerializer(DepartmentQuerySerializer):
    status = serializers.ChoiceField(choices=['waiting', 'called', 'completed', 'missed'], required=False)
