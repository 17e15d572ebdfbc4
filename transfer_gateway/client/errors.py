"""
Errors raised by remote processor clients.

``RemoteApiError`` means the processor answered with an error document;
``RemoteConnectionError`` means no answer arrived at all, so the outcome
of a write is unknown.
"""

import json
from typing import Optional

EXPIRED_ACCESS_TOKEN_ERROR_CODE = "ExpiredAccessToken"
INVALID_ACCESS_TOKEN_ERROR_CODE = "InvalidAccessToken"


def parse_error_body(body: Optional[str]) -> tuple[str, str]:
    """
    Extract ``(code, message)`` from a processor error document.

    Error documents look like::

        {"code": "ValidationError", "message": "Validation error(s) present.",
         "_embedded": {"errors": [{"code": "Invalid", "message": "Invalid amount.",
                                   "path": "/amount/value"}]}}

    Nested validation errors are appended to the message as ``path: message``.
    Bodies that are not JSON yield an empty code and the raw text.
    """
    if not body:
        return "", ""
    try:
        data = json.loads(body)
    except ValueError:
        return "", body.strip()
    if not isinstance(data, dict):
        return "", body.strip()

    code = str(data.get("code") or "")
    parts = [str(data["message"])] if data.get("message") else []
    nested = (data.get("_embedded") or {}).get("errors") or []
    for err in nested:
        if not isinstance(err, dict):
            continue
        path = err.get("path")
        text = err.get("message") or err.get("code") or ""
        parts.append(f"{path}: {text}" if path else str(text))
    return code, "; ".join(parts)


class RemoteApiError(Exception):
    """The remote processor rejected a call."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: str = "",
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.body = body

    @classmethod
    def from_response(cls, status_code: int, body: Optional[str]) -> "RemoteApiError":
        code, message = parse_error_body(body)
        return cls(message or f"HTTP {status_code}", status_code=status_code, code=code, body=body)

    @property
    def is_auth_error(self) -> bool:
        """True when the bearer credential is expired or was revoked."""
        auth_codes = (EXPIRED_ACCESS_TOKEN_ERROR_CODE, INVALID_ACCESS_TOKEN_ERROR_CODE)
        if self.code in auth_codes:
            return True
        return any(c in (self.body or "") for c in auth_codes)


class RemoteConnectionError(RemoteApiError):
    """No response from the remote processor (timeout, DNS, connection reset)."""

    CODE = "ConnectionError"

    def __init__(self, message: str):
        super().__init__(message, status_code=None, code=self.CODE)
