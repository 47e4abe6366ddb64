"""
Domain and API models for the eSIM plan finder.

IntentRecord and MatchResult live for a single request. CountryRecord and
PlanRecord mirror rows of the read-only catalog.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DataUnit(str, Enum):
    """Unit of a plan's data allowance"""
    MB = "MB"
    GB = "GB"


class IntentRecord(BaseModel):
    """
    Structured interpretation of a free-text plan request.

    Every field except chat_response is optional and None means "unspecified":
    the resolver skips the matching filter. Zero is a real value and is
    filtered on.
    """
    model_config = ConfigDict(frozen=True)

    country_name: Optional[str] = None
    country_code: Optional[str] = None
    data_amount: Optional[Union[int, float]] = None
    data_unit: Optional[DataUnit] = None
    duration_in_days: Optional[int] = None
    chat_response: str

    @field_validator("data_unit", mode="before")
    @classmethod
    def normalize_unit(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class CountryRecord(BaseModel):
    """Row of the countries reference table"""
    model_config = ConfigDict(frozen=True, extra="ignore")

    code: str
    name: str


class PlanRecord(BaseModel):
    """
    Row of the plans table.

    Only country_code, data_amount, data_unit and duration_in_days are read by
    the resolver. Everything else (id, plan_option, price columns, timestamps)
    is kept as passthrough and forwarded untouched.
    """
    model_config = ConfigDict(frozen=True, extra="allow")

    id: Optional[Union[int, str]] = None
    country_code: str
    data_amount: Union[int, float]
    data_unit: DataUnit
    duration_in_days: int
    plan_option: Optional[str] = None

    @field_validator("data_unit", mode="before")
    @classmethod
    def normalize_unit(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def price(self, column: str) -> Any:
        """Read the catalog-specific price column (e.g. idr_price)."""
        return (self.model_extra or {}).get(column)

    def to_row(self) -> Dict[str, Any]:
        """The catalog row as read, passthrough fields included"""
        return self.model_dump(mode="json", exclude_unset=True)


class PlanOffer(BaseModel):
    """Fixed output shape for an exact-match plan"""
    id: Optional[Union[int, str]] = None
    country_code: str
    country_name: str
    plan_option: Optional[str] = None
    data_amount: Union[int, float]
    data_unit: DataUnit
    duration_in_days: int
    price: Optional[Union[int, float]] = None


# ============================================================================
# Match outcomes
# ============================================================================

class Exact(BaseModel):
    """Strict filter matched at least one plan"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["exact"] = "exact"
    plans: tuple[PlanRecord, ...]


class CloseMatch(BaseModel):
    """Strict filter was empty; relaxed filter matched at least one plan"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["close_match"] = "close_match"
    plans: tuple[PlanRecord, ...]


class NoMatch(BaseModel):
    """Neither strict nor relaxed filter matched"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["no_match"] = "no_match"


MatchResult = Union[Exact, CloseMatch, NoMatch]


# ============================================================================
# API models
# ============================================================================

class ChatMessage(BaseModel):
    role: str = "user"
    content: Optional[str] = None


class PromptRequest(BaseModel):
    """Body of POST /prompt, as sent by the chat widget"""
    messages: List[ChatMessage] = Field(default_factory=list)

    @property
    def current_message(self) -> Optional[str]:
        """Content of the last message, None when missing or blank"""
        if not self.messages:
            return None
        content = self.messages[-1].content
        if content is None or not content.strip():
            return None
        return content


class ResponseEnvelope(BaseModel):
    status: int
    success: bool
    message: str
    chat_response: str
    data: List[Dict[str, Any]] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    environment: str
    services: Dict[str, bool]
