"""
Core models for the user management service.
Provides BaseModel with timestamp fields.
"""
from django.db import models


class BaseModel(models.Model):
    """
    Abstract base model with creation and update timestamps.

    All persisted records in the service inherit from this base model to
    ensure consistent bookkeeping across apps.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when the record was created"
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when the record was last updated"
    )

    class Meta:
        abstract = True
        ordering = ['-created_at']
