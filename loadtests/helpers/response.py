"""Response error extraction for load test observability.

Parses Sandbox API error responses into human-readable messages.
Handles two response shapes:

- Pydantic validation (422): {"detail": [{"loc": [...], "msg": "...", "type": "..."}]}
- Sandbox errors (400/402/403/404/409/422/502/504): {"error": "msg", "error_code": "CODE", "context": {...}}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def extract_error_detail(response: Response) -> str:
    """Extract a human-readable error message from an API error response.

    Returns a compact string suitable for Locust failure messages and log lines.
    """
    try:
        body = response.json()
    except ValueError:
        # Not JSON, return raw text truncated
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if "detail" in body and isinstance(body["detail"], list):
        parts = []
        for err in body["detail"]:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        return " | ".join(parts)

    if "error_code" in body:
        return f"{body['error_code']}: {body.get('error', '')}"

    if "detail" in body:
        return str(body["detail"])

    return str(body)[:300]


def error_code(response: Response) -> str | None:
    """The sandbox error code of a failed response, if it carries one."""
    try:
        return response.json().get("error_code")
    except ValueError:
        return None
