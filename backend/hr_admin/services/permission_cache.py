"""
Permission profile cache - read-through TTL cache with forced invalidation.

Caches a user's resolved profile (role permissions + enabled modules) for
GET /api/v1/auth/me. Entries expire after PERMISSION_CACHE_TTL seconds and
are dropped when a role, its permissions, a user's role or an
organization's modules change: once when the service flushes the change
and again after the session commits it.

CRITICAL: authorization decisions never read this cache. Permission
dependencies in platform/rbac.py always query the database.
"""

import copy
import logging
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable, Dict, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session

from hr_admin.config.settings import get_settings

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("value", "cached_at", "organization_id", "role_id")

    def __init__(self, value: Dict[str, Any], organization_id: Optional[str], role_id: Optional[str]):
        self.value = value
        self.cached_at = datetime.now(timezone.utc)
        self.organization_id = organization_id
        self.role_id = role_id


class PermissionCache:
    """
    Thread-safe in-memory profile cache keyed by user id.

    Usage:
        cache = get_permission_cache()
        profile = cache.get_or_load(user_id, lambda: build_profile(db, user))

        # On role permission change
        cache.invalidate_role(role_id)
    """

    def __init__(self, ttl_seconds: Optional[int] = None, max_size: int = 10000):
        self._ttl_seconds = ttl_seconds if ttl_seconds is not None else get_settings().permission_cache_ttl
        self._max_size = max_size
        self._entries: Dict[str, _Entry] = {}
        self._lock = Lock()

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def _is_fresh(self, entry: _Entry) -> bool:
        age = (datetime.now(timezone.utc) - entry.cached_at).total_seconds()
        return age <= self._ttl_seconds

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get a cached profile if present and not expired."""
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            if not self._is_fresh(entry):
                del self._entries[user_id]
                return None
            return copy.deepcopy(entry.value)

    def set(self, user_id: str, profile: Dict[str, Any]) -> None:
        """Cache a profile. The profile's organization and role ids index invalidation."""
        organization = profile.get("organization") or {}
        user = profile.get("user") or {}
        with self._lock:
            if user_id not in self._entries and len(self._entries) >= self._max_size:
                oldest_key = min(self._entries, key=lambda k: self._entries[k].cached_at)
                del self._entries[oldest_key]
            self._entries[user_id] = _Entry(
                copy.deepcopy(profile),
                organization_id=organization.get("id"),
                role_id=user.get("role_id"),
            )

    def get_or_load(self, user_id: str, loader: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        """Return the cached profile, loading and caching it on a miss."""
        cached = self.get(user_id)
        if cached is not None:
            logger.debug("Permission cache hit", extra={"user_id": user_id})
            return cached
        logger.debug("Permission cache miss", extra={"user_id": user_id})
        profile = loader()
        self.set(user_id, profile)
        return profile

    def _drop(self, predicate: Callable[[str, _Entry], bool], reason: str, **context) -> int:
        with self._lock:
            keys = [k for k, entry in self._entries.items() if predicate(k, entry)]
            for key in keys:
                del self._entries[key]
        if keys:
            logger.info(
                "Invalidated permission cache entries",
                extra={"reason": reason, "count": len(keys), **context},
            )
        return len(keys)

    def invalidate_user(self, user_id: str) -> int:
        return self._drop(lambda k, _: k == user_id, "user_changed", user_id=user_id)

    def invalidate_role(self, role_id: str) -> int:
        return self._drop(lambda _, e: e.role_id == role_id, "role_changed", role_id=role_id)

    def invalidate_organization(self, organization_id: str) -> int:
        return self._drop(
            lambda _, e: e.organization_id == organization_id,
            "organization_changed",
            org_id=organization_id,
        )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_cache: Optional[PermissionCache] = None
_cache_lock = Lock()


def get_permission_cache() -> PermissionCache:
    """Get or create the process-wide permission cache."""
    global _cache
    if _cache is None:
        with _cache_lock:
            if _cache is None:
                _cache = PermissionCache()
    return _cache


def reset_permission_cache() -> None:
    global _cache
    with _cache_lock:
        _cache = None


# =============================================================================
# Commit-bound invalidation
# =============================================================================

_PENDING_KEY = "permission_cache_pending"

_SCOPES = {
    "user": PermissionCache.invalidate_user,
    "role": PermissionCache.invalidate_role,
    "organization": PermissionCache.invalidate_organization,
}


def invalidate_on_commit(db: Session, scope: str, key: str) -> None:
    """
    Drop cached profiles now and again once the session commits.

    The second pass removes profiles a concurrent request loaded from the
    previously committed state while this transaction was still open.

    Usage:
        invalidate_on_commit(self.db, "role", role.id)
    """
    invalidate = _SCOPES[scope]
    invalidate(get_permission_cache(), key)
    db.info.setdefault(_PENDING_KEY, set()).add((scope, key))


@event.listens_for(Session, "after_commit")
def _invalidate_committed(session: Session) -> None:
    pending = session.info.pop(_PENDING_KEY, None)
    if not pending:
        return
    cache = get_permission_cache()
    for scope, key in pending:
        _SCOPES[scope](cache, key)


@event.listens_for(Session, "after_rollback")
def _discard_pending(session: Session) -> None:
    session.info.pop(_PENDING_KEY, None)
