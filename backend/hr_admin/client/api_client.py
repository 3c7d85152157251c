"""
HTTP client for the HR Admin API.

Wraps httpx: sends the bearer token and, in support mode, the
X-Impersonate-Org header; unwraps the {"success", "message", "data"}
envelope and raises ClientAPIError for any failure envelope.

Usage:
    with HRAdminClient("http://localhost:8000") as client:
        client.login("admin@acme.test", "secret-pass", org_slug="acme")
        roles = client.get("/api/v1/acme/roles")
"""

import logging
from typing import Any, Dict, Optional

import httpx

from hr_admin.client.profile import DEFAULT_PROFILE_TTL_SECONDS, ProfileStore
from hr_admin.platform.tenant_context import IMPERSONATION_HEADER

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class ClientAPIError(Exception):
    """A request failed or the server answered with a failure envelope."""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details

    def __repr__(self) -> str:
        return f"ClientAPIError(status_code={self.status_code}, code={self.code!r}, message={self.message!r})"


class HRAdminClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        impersonate_org: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: Optional[httpx.Client] = None,
        profile_ttl_seconds: float = DEFAULT_PROFILE_TTL_SECONDS,
    ):
        self.token = token
        self.refresh_token: Optional[str] = None
        self.impersonate_org = impersonate_org
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)
        self.profile = ProfileStore(self.get_profile, ttl_seconds=profile_ttl_seconds)

    def __enter__(self) -> "HRAdminClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self.impersonate_org:
            headers[IMPERSONATION_HEADER] = self.impersonate_org
        return headers

    def request(self, method: str, path: str, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        """Send a request and return the envelope's data."""
        try:
            resp = self._http.request(method, path, json=json, params=params, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.warning("HR Admin API request failed", extra={"method": method, "path": path, "error": str(exc)})
            raise ClientAPIError(0, f"Request failed: {exc}", code="transport_error") from exc

        try:
            body = resp.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            raise ClientAPIError(resp.status_code, resp.text or "Unexpected response", code="invalid_response")

        if resp.status_code >= 400 or body.get("success") is False:
            raise ClientAPIError(
                resp.status_code,
                body.get("message") or "Request failed",
                code=body.get("code"),
                details=body.get("details"),
            )
        return body.get("data", body)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Any = None) -> Any:
        return self.request("PUT", path, json=json)

    def patch(self, path: str, json: Any = None) -> Any:
        return self.request("PATCH", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, org_slug: Optional[str] = None) -> Dict[str, Any]:
        payload = {"email": email, "password": password}
        if org_slug:
            payload["org_slug"] = org_slug
        data = self.post("/api/v1/auth/login", json=payload)
        self.token = data["token"]
        self.refresh_token = data.get("refresh_token")
        self.profile.invalidate()
        return data

    def refresh(self) -> str:
        if not self.refresh_token:
            raise ClientAPIError(401, "No refresh token", code="no_refresh_token")
        data = self.post("/api/v1/auth/refresh", json={"refresh_token": self.refresh_token})
        self.token = data["token"]
        return self.token

    def get_profile(self) -> Dict[str, Any]:
        return self.get("/api/v1/auth/me")

    def logout(self) -> None:
        self.post("/api/v1/auth/logout")
        self.token = None
        self.refresh_token = None
        self.profile.invalidate()

    # ------------------------------------------------------------------
    # Support mode
    # ------------------------------------------------------------------

    def impersonate(self, org_slug: Optional[str]) -> None:
        """Enter support mode for an organization, or leave it with None."""
        self.impersonate_org = org_slug.strip().lower() if org_slug else None
        self.profile.invalidate()
