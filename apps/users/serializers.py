from django.contrib.auth import get_user_model
from rest_framework import serializers

from .roles import Permission

User = get_user_model()


class UserRoleSerializer(serializers.ModelSerializer):
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ("id", "email", "full_name", "role", "status", "tenant", "permissions")
        read_only_fields = fields

    def get_permissions(self, obj) -> list[str]:
        from .roles import permissions_for

        return permissions_for(obj)


class ValidatePermissionSerializer(serializers.Serializer):
    permission = serializers.ChoiceField(choices=Permission.choices)
