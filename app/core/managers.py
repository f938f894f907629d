"""
Custom QuerySet and Manager classes for soft-deleted records.

Chat messages are never physically removed by users: a delete marks the
row and hides it from listings, but the row stays for moderation audit.

Manager vs QuerySet:
    - QuerySet: Makes bulk delete() a soft delete
    - Manager: Attaches QuerySet to model and applies the default filter

Usage:
    from core.managers import SoftDeleteManager

    class Message(SoftDeleteMixin, BaseModel):
        objects = SoftDeleteManager()   # Default: excludes deleted
        all_objects = models.Manager()  # Includes deleted (admin, audit)

    Message.objects.filter(conversation=conversation)      # visible only
    Message.all_objects.filter(conversation=conversation)  # full history

Note:
    Cascading deletes from a parent (deleting a Conversation) go through
    Django's base manager, so they remove soft-deleted rows as well.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class SoftDeleteQuerySet(models.QuerySet):
    """QuerySet whose delete() marks rows instead of removing them."""

    def delete(self) -> tuple[int, dict[str, int]]:
        """
        Soft delete all objects in queryset.

        Returns:
            Tuple of (count, {model_label: count}) matching Django's delete()
        """
        now = timezone.now()
        count = self.filter(is_deleted=False).update(
            is_deleted=True,
            deleted_at=now,
            updated_at=now,
        )
        return count, {self.model._meta.label: count}


class SoftDeleteManager(models.Manager):
    """
    Manager that filters out soft-deleted records by default.

    Always pair with a plain ``models.Manager()`` for audit access.
    """

    def get_queryset(self) -> SoftDeleteQuerySet:
        return SoftDeleteQuerySet(self.model, using=self._db).filter(is_deleted=False)
