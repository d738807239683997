# accounts/serializers.py
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError

from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from core.permissions import Capability, effective_capabilities

User = get_user_model()


class StaffTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Username login for staff; the response carries role and capabilities."""

    @classmethod
    def get_token(cls, user):
        tok = super().get_token(user)
        tok["username"] = user.get_username()
        tok["role"] = user.role
        return tok

    def validate(self, attrs):
        supplied = (attrs.get("username") or "").strip()
        match = User.objects.filter(**{f"{User.USERNAME_FIELD}__iexact": supplied}).first()
        if match is not None:
            attrs["username"] = getattr(match, User.USERNAME_FIELD)

        data = super().validate(attrs)
        data["user"] = UserSerializer(self.user).data
        return data


class UserSerializer(serializers.ModelSerializer):
    capabilities = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = (
            "id", "username", "email", "full_name", "role", "is_active",
            "date_joined", "last_login", "capabilities",
        )
        read_only_fields = ("id", "date_joined", "last_login", "capabilities")

    def get_capabilities(self, obj):
        return effective_capabilities(obj)


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)

    class Meta:
        model = User
        fields = ("id", "username", "email", "full_name", "role", "is_active", "password")
        read_only_fields = ("id",)

    def validate_username(self, v):
        qs = User.objects.filter(username__iexact=v)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("Username already taken.")
        return v

    def validate_password(self, value):
        try:
            validate_password(value)
        except ValidationError as e:
            raise serializers.ValidationError(list(e.messages))
        return value

    def create(self, validated_data):
        pwd = validated_data.pop("password")
        user = User(**validated_data)
        user.set_password(pwd)
        user.save()
        return user

    def update(self, instance, validated_data):
        pwd = validated_data.pop("password", None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if pwd:
            instance.set_password(pwd)
        instance.save()
        return instance

    def to_representation(self, instance):
        return UserSerializer(instance, context=self.context).data


class ChangePasswordSerializer(serializers.Serializer):
    old_password = serializers.CharField(required=True)
    new_password = serializers.CharField(required=True, min_length=8)
    confirm_password = serializers.CharField(required=True)

    def validate_old_password(self, value):
        user = self.context['request'].user
        if not user.check_password(value):
            raise serializers.ValidationError("Old password is incorrect.")
        return value

    def validate_new_password(self, value):
        try:
            validate_password(value, self.context['request'].user)
        except ValidationError as e:
            raise serializers.ValidationError(list(e.messages))
        return value

    def validate(self, attrs):
        if attrs['new_password'] != attrs['confirm_password']:
            raise serializers.ValidationError("New passwords don't match.")
        return attrs

    def save(self):
        user = self.context['request'].user
        user.set_password(self.validated_data['new_password'])
        user.save()
        return user


class CapabilityChangeSerializer(serializers.Serializer):
    """Grant or revoke one capability; unknown names are rejected against the enum."""
    capability = serializers.ChoiceField(choices=Capability.choices)
    granted = serializers.BooleanField(default=True)
