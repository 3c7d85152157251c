"""
Read-through cache of the caller's server-validated profile.

The profile (user, permissions, enabled modules) is fetched from
GET /api/v1/auth/me and reused for `ttl_seconds`. Role and permission
mutations call invalidate() so the next read goes back to the server;
refresh_on_focus() re-fetches when the cached copy is stale, which is
what a UI does when its window regains focus.
"""

import logging
import time
from threading import Lock
from typing import Any, Callable, Dict, Optional

from hr_admin.client.permissions import PermissionMirror

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_TTL_SECONDS = 30

ProfileLoader = Callable[[], Dict[str, Any]]


class ProfileStore:
    def __init__(
        self,
        loader: ProfileLoader,
        ttl_seconds: float = DEFAULT_PROFILE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._profile: Optional[Dict[str, Any]] = None
        self._loaded_at: Optional[float] = None
        self._lock = Lock()

    def _is_stale(self) -> bool:
        return self._loaded_at is None or self._clock() - self._loaded_at >= self._ttl

    def _load(self) -> Dict[str, Any]:
        profile = self._loader()
        self._profile = profile
        self._loaded_at = self._clock()
        return profile

    def get(self) -> Dict[str, Any]:
        """Cached profile, fetched from the server when missing or expired."""
        with self._lock:
            if self._profile is None or self._is_stale():
                return self._load()
            return self._profile

    def refresh(self) -> Dict[str, Any]:
        """Fetch from the server regardless of age."""
        with self._lock:
            return self._load()

    def refresh_on_focus(self) -> Optional[Dict[str, Any]]:
        """Re-fetch if stale; returns the new profile, or None when still fresh."""
        with self._lock:
            if self._profile is not None and not self._is_stale():
                return None
            return self._load()

    def invalidate(self) -> None:
        """Drop the cached profile; call after role or permission mutations."""
        with self._lock:
            self._profile = None
            self._loaded_at = None
        logger.debug("Profile cache invalidated")

    def poll_due(self) -> bool:
        """True when a background poll should re-fetch the profile."""
        with self._lock:
            return self._profile is None or self._is_stale()

    def mirror(self, impersonated_organization_id: Optional[str] = None) -> PermissionMirror:
        return PermissionMirror(self.get(), impersonated_organization_id=impersonated_organization_id)
