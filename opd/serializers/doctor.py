from rest_framework import serializers

from .common import clean_text


class DoctorSignupSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(write_only=True)
    name = serializers.CharField(max_length=255)
    department = serializers.CharField(max_length=100)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=20)
    licenseNo = serializers.CharField(required=False, allow_blank=True, max_length=50)
    experience = serializers.IntegerField(required=False, min_value=0, max_value=80)

    def validate_name(self, v):
        v = clean_text(v)
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v


class QueuePauseSerializer(serializers.Serializer):
    paused = serializers.BooleanField()


class DoctorListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['pending', 'approved', 'rejected'], required=False)
    department = serializers.CharField(required=False, allow_blank=True, max_length=100)
