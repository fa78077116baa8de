# users/serializers.py

from rest_framework import serializers

from users.models import User


# ---------------- LOGIN (INPUT ONLY) ----------------
class LoginSerializer(serializers.Serializer):
    """
    identifier: email (contains "@") or username.
    Authentication happens in the view through the auth backends.
    """

    identifier = serializers.CharField()
    password = serializers.CharField(write_only=True, style={"input_type": "password"})


# ---------------- USER OUTPUT ----------------
class UserSerializer(serializers.ModelSerializer):
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "username",
            "first_name",
            "last_name",
            "role",
            "permissions",
        ]

    def get_permissions(self, obj) -> list[str]:
        return sorted(p for p in obj.get_all_permissions() if p.startswith("ledger."))


class LoginResponseSerializer(serializers.Serializer):
    access = serializers.CharField()
    refresh = serializers.CharField()
    user = UserSerializer()
