"""Error types raised by the plan finder.

    PlanFinderError                 500
    ├── ConfigurationError          500
    ├── ValidationError             400
    │   └── EmptyInputError         400
    └── ExternalServiceError        502
        ├── ExtractionError         502  (service="generation")
        └── CatalogError            503  (service="catalog")

An unknown country, a close match and "no plans" are ordinary request
outcomes rendered as response envelopes, so none of them has an error type.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again."


def _merge(details: Optional[Dict[str, Any]], **context: Any) -> Dict[str, Any]:
    merged = dict(details or {})
    merged.update({key: value for key, value in context.items() if value is not None})
    return merged


class PlanFinderError(Exception):
    """Root error type.

    Every subclass renders to the same JSON body through ``to_dict`` and
    declares the HTTP status it maps to in ``status_code``.
    """

    status_code: int = 500

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code or type(self).__name__
        self.details = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class ConfigurationError(PlanFinderError):
    """Missing credentials or settings (OPENAI_API_KEY, SUPABASE_URL, ...)."""


class ValidationError(PlanFinderError):
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.field = field
        super().__init__(message, code, _merge(details, field=field))


class EmptyInputError(ValidationError):
    """The request carried no usable message text."""


class ExternalServiceError(PlanFinderError):
    """A collaborator (generation model, Supabase) failed or timed out."""

    status_code = 502
    service: Optional[str] = None

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None, service: Optional[str] = None):
        if service is not None:
            self.service = service
        super().__init__(message, code, _merge(details, service=self.service))


class ExtractionError(ExternalServiceError):
    """Generation failed or returned a record that does not fit the schema.

    Never degraded into an empty intent, which would read as "no constraints"
    and scan the whole catalog.
    """

    service = "generation"


class CatalogError(ExternalServiceError):
    """A catalog read or write failed. Not the same thing as "no rows"."""

    status_code = 503
    service = "catalog"

    def __init__(self, message: str, table: Optional[str] = None, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.table = table
        super().__init__(message, code, _merge(details, table=table))


def get_error_response(error: Exception) -> Dict[str, Any]:
    """JSON body for ``error``. Unexpected exceptions get a generic message."""
    if isinstance(error, PlanFinderError):
        return error.to_dict()
    return {"error": "InternalError", "message": GENERIC_ERROR_MESSAGE, "details": {}}


def get_status_code(error: Exception) -> int:
    return error.status_code if isinstance(error, PlanFinderError) else 500
