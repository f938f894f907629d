"""
Serializers for authentication models.

This module provides DRF serializers for:
- User model (read operations)

Related files:
    - models.py: User model
    - chat/serializers.py: Embeds UserSerializer for senders and participants

Security:
    - Only public profile fields are exposed; every field is read-only
"""

from rest_framework import serializers

from authentication.models import User


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for User model (read operations).

    Used wherever a chat payload references a person: message senders,
    conversation participants, presence events.
    """

    name = serializers.CharField(source="display_name", read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "name",
            "avatar",
            "role",
        ]
        read_only_fields = fields
