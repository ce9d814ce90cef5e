"""
RBAC signals for permission cache invalidation.

Any change to the auth item graph bumps the global permission version so
that every session rebuilds its snapshot on the next check. Assignments are
not covered here: RBACService.assign_role / revoke_role bump the version
themselves.
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from apps.rbac.models import AuthItem, AuthItemChild
from apps.rbac.permission_cache import invalidate_permissions


@receiver(post_save, sender=AuthItem)
@receiver(post_delete, sender=AuthItem)
def invalidate_on_item_change(sender, instance, **kwargs):
    """Bump the permission version when an item is saved or deleted."""
    invalidate_permissions()


@receiver(post_save, sender=AuthItemChild)
@receiver(post_delete, sender=AuthItemChild)
def invalidate_on_item_child_change(sender, instance, **kwargs):
    """Bump the permission version when the item graph is re-linked."""
    invalidate_permissions()
