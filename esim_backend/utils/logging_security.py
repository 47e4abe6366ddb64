"""
Request logging with credential and PII redaction.

Chat messages are free text typed by travellers (names, phone numbers, the odd
passport number), so the service only ever logs a short redacted preview of
them. Supabase keys travel in the ``apikey`` header and OpenAI keys start with
``sk-``; neither may reach a log line.
"""
import hashlib
import json
import logging
import re
import secrets
import time
import traceback
from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import Request

logger = logging.getLogger(__name__)


class SecureLogger:
    """Builds log payloads for the request middleware, redacting as it goes."""

    SENSITIVE_HEADERS = frozenset({
        "authorization",
        "proxy-authorization",
        "apikey",
        "x-api-key",
        "api-key",
        "cookie",
        "set-cookie",
        "x-client-info",
    })

    # Order matters: cards before phones, JWTs before generic keys.
    REDACTIONS = (
        ("EMAIL", re.compile(r"\b[\w.%+-]+@[\w.-]+\.[A-Za-z]{2,}\b")),
        ("CARD", re.compile(r"\b(?:\d{4}[ -]?){3}\d{4}\b")),
        ("PHONE", re.compile(r"(?<!\w)\+?\d[\d\s-]{8,14}\d\b")),
        ("JWT", re.compile(r"eyJ[\w-]+\.eyJ[\w-]+\.[\w-]+")),
        ("API_KEY", re.compile(r"sk-[\w-]{20,}")),
    )

    TRUNCATION_MARK = "...[TRUNCATED]"

    @classmethod
    def new_request_id(cls) -> str:
        """req_<epoch ms>_<8 hex chars>"""
        return f"req_{time.time_ns() // 1_000_000}_{secrets.token_hex(4)}"

    @classmethod
    def redact(cls, text: Optional[str], limit: int = 1000) -> Optional[str]:
        if not text:
            return text
        clipped = text if len(text) <= limit else text[:limit] + cls.TRUNCATION_MARK
        for label, pattern in cls.REDACTIONS:
            clipped = pattern.sub(f"[{label}_REDACTED]", clipped)
        return clipped

    @classmethod
    def preview(cls, text: Optional[str], limit: int = 80) -> str:
        """One-line redacted preview of a chat message."""
        return cls.redact(" ".join((text or "").split()), limit=limit) or ""

    @classmethod
    def sanitize_headers(cls, headers: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            name: "[REDACTED]" if name.strip().lower() in cls.SENSITIVE_HEADERS else cls.redact(str(value))
            for name, value in (headers or {}).items()
        }

    @classmethod
    def request_fields(cls, request: "Request", request_id: str, with_headers: bool = False) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "user_agent": request.headers.get("user-agent", "unknown")[:200],
        }
        if request.client:
            fields["client_hash"] = hashlib.sha256(request.client.host.encode()).hexdigest()[:8]
        if with_headers:
            fields["headers"] = cls.sanitize_headers(request.headers)
        return fields

    @staticmethod
    def response_fields(request_id: str, status_code: int, duration_ms: float) -> Dict[str, Any]:
        category = "success" if status_code < 400 else "client_error" if status_code < 500 else "server_error"
        return {
            "request_id": request_id,
            "status_code": status_code,
            "status_category": category,
            "duration_ms": round(duration_ms, 2),
        }

    @classmethod
    def error_fields(cls, request_id: str, error: BaseException, with_traceback: bool = False) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "request_id": request_id,
            "error_type": type(error).__name__,
            "error_message": cls.redact(str(error)),
        }
        if with_traceback:
            fields["traceback"] = cls.redact(
                "".join(traceback.format_exception(type(error), error, error.__traceback__)),
                limit=8000,
            )
        return fields


def log_secure(level: str, message: str, data: Dict[str, Any], request_id: Optional[str] = None) -> None:
    """Emit ``{"message": ..., "data": ...}`` as one JSON log line."""
    payload = dict(data)
    if request_id:
        payload["request_id"] = request_id
    logger.log(
        getattr(logging, level.upper(), logging.DEBUG),
        json.dumps({"message": message, "data": payload}, default=str),
    )
