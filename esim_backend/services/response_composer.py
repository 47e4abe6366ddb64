"""
Response composition: lookup + match outcome -> ResponseEnvelope.

| outcome            | status | success | data                  |
|--------------------|--------|---------|-----------------------|
| country not found  | 404    | false   | []                    |
| NoMatch            | 404    | false   | []                    |
| CloseMatch         | 200    | false   | close-match rows      |
| Exact              | 200    | true    | rows as PlanOffer     |

Every envelope carries the extractor's chat_response.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from ..models import (
    CloseMatch,
    CountryRecord,
    Exact,
    MatchResult,
    NoMatch,
    PlanOffer,
    PlanRecord,
    ResponseEnvelope,
)

COUNTRY_NOT_FOUND_MESSAGE = "No exact match found."
EXACT_MATCH_MESSAGE = "Exact match found"


def response(status: int, success: bool, message: str, chat_response: str, data=None) -> ResponseEnvelope:
    return ResponseEnvelope(
        status=status,
        success=success,
        message=message,
        chat_response=chat_response,
        data=list(data or []),
    )


def project_offer(plan: PlanRecord, country: CountryRecord, price_column: str) -> Dict[str, Any]:
    """Exact-match output row; country_name is the resolved catalog name."""
    offer = PlanOffer(
        id=plan.id,
        country_code=plan.country_code,
        country_name=country.name,
        plan_option=plan.plan_option,
        data_amount=plan.data_amount,
        data_unit=plan.data_unit,
        duration_in_days=plan.duration_in_days,
        price=plan.price(price_column),
    )
    return offer.model_dump(mode="json")


class ResponseComposer:
    """Pure mapping from pipeline outcome to envelope."""

    def __init__(self, price_column: str = "idr_price"):
        self.price_column = price_column

    def country_not_found(self, chat_response: str) -> ResponseEnvelope:
        return response(404, False, COUNTRY_NOT_FOUND_MESSAGE, chat_response)

    def compose(
        self,
        country: Optional[CountryRecord],
        match: Optional[MatchResult],
        chat_response: str,
    ) -> ResponseEnvelope:
        if country is None:
            return self.country_not_found(chat_response)

        if isinstance(match, Exact):
            data = [project_offer(plan, country, self.price_column) for plan in match.plans]
            return response(200, True, EXACT_MATCH_MESSAGE, chat_response, data)

        if isinstance(match, CloseMatch):
            return response(
                200,
                False,
                f"No exact match found. Here are the closest matches based on {country.name} esim.",
                chat_response,
                [plan.to_row() for plan in match.plans],
            )

        if isinstance(match, NoMatch):
            return response(404, False, f"No plans found for {country.name}.", chat_response)

        raise TypeError(f"Unknown match result: {match!r}")
