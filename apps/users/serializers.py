"""
Serializers for user authentication and management.
"""

import re

from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError

from .models import CustomUser


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """JWT token serializer that embeds the journal role."""

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['role'] = user.capabilities.role
        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = UserSerializer(self.user).data
        return data


class UserRegistrationSerializer(serializers.ModelSerializer):
    """Serializer for user registration with validation."""

    password = serializers.CharField(write_only=True, min_length=8)
    password_confirm = serializers.CharField(write_only=True)
    role = serializers.ChoiceField(
        choices=[CustomUser.ROLE_AUTHOR, CustomUser.ROLE_REVIEWER, CustomUser.ROLE_VISITOR],
        default=CustomUser.ROLE_AUTHOR
    )

    class Meta:
        model = CustomUser
        fields = (
            'email', 'first_name', 'last_name', 'affiliation', 'role',
            'password', 'password_confirm'
        )
        extra_kwargs = {
            'email': {'required': True},
            'first_name': {'required': True},
            'last_name': {'required': True},
        }

    def validate_email(self, value):
        """Validate email format and uniqueness."""
        if CustomUser.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("A user with this email already exists.")

        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, value):
            raise serializers.ValidationError("Enter a valid email address.")

        return value

    def validate(self, attrs):
        """Validate password confirmation and strength."""
        password = attrs.get('password')
        password_confirm = attrs.pop('password_confirm', None)

        if password != password_confirm:
            raise serializers.ValidationError({
                'password_confirm': 'Password confirmation does not match.'
            })

        try:
            validate_password(password)
        except ValidationError as e:
            raise serializers.ValidationError({'password': e.messages})

        return attrs

    def create(self, validated_data):
        return CustomUser.objects.create_user(**validated_data)


class UserSerializer(serializers.ModelSerializer):
    """Public representation of an account."""

    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = CustomUser
        fields = (
            'id', 'email', 'first_name', 'last_name', 'full_name',
            'affiliation', 'orcid_id', 'expertise', 'role', 'is_active',
            'date_joined',
        )
        read_only_fields = ('id', 'email', 'role', 'is_active', 'date_joined')


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user reference embedded in other resources."""

    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = CustomUser
        fields = ('id', 'email', 'full_name', 'affiliation')
        read_only_fields = fields


class AdminUserSerializer(UserSerializer):
    """Account as seen by administrators; role and activation are editable."""

    class Meta(UserSerializer.Meta):
        read_only_fields = ('id', 'email', 'date_joined')
