"""
Python client for the HR Admin API: HTTP wrapper, profile cache and the
permission mirror used for UI gating.
"""

from hr_admin.client.api_client import ClientAPIError, HRAdminClient
from hr_admin.client.permissions import PermissionMirror, ProfilePermissionFacts
from hr_admin.client.profile import ProfileStore

__all__ = [
    "ClientAPIError",
    "HRAdminClient",
    "PermissionMirror",
    "ProfilePermissionFacts",
    "ProfileStore",
]
