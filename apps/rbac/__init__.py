"""
RBAC (Role-Based Access Control) application.

Provides:
- User identity storage with self-protection rules
- Roles, permissions and routes linked in an item graph
- Per-session permission snapshots with global version invalidation
"""
