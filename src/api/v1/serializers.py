"""Serializers for the authenticated user and the login response."""
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from accounts.models import User


class MeSerializer(serializers.ModelSerializer):
    """Own profile; only the name and phone fields are writable."""

    full_name = serializers.CharField(source="get_full_name", read_only=True)
    role_display = serializers.CharField(read_only=True)
    can_manage_commissions = serializers.BooleanField(read_only=True)
    can_audit_finances = serializers.BooleanField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id", "email", "first_name", "last_name", "full_name", "phone",
            "role", "role_display", "can_manage_commissions", "can_audit_finances",
        ]
        read_only_fields = ["id", "email", "role"]


class LoginSerializer(TokenObtainPairSerializer):
    """Token pair plus the profile, so the client needs no extra /me call."""

    def validate(self, attrs):
        data = super().validate(attrs)
        data["user"] = MeSerializer(self.user).data
        return data
