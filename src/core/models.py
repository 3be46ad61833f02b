"""Shared abstract models."""
import uuid

from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base with a UUID primary key and creation/update timestamps."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField("cree le", auto_now_add=True)
    updated_at = models.DateTimeField("modifie le", auto_now=True)

    class Meta:
        abstract = True
