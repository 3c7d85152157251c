"""
Response envelope shared by every endpoint.

Success: {"success": true, "message": "...", "data": ...}
Failure envelopes are rendered by hr_admin.platform.errors.
"""

from typing import Any


def success_response(data: Any = None, message: str = "") -> dict:
    """Wrap a payload in the success envelope."""
    return {"success": True, "message": message, "data": data}
