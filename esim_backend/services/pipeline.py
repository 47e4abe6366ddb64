"""
Request pipeline: raw text -> ResponseEnvelope.

Stages run strictly in sequence, each awaiting the previous one:

    extract intent -> resolve country -> resolve plans -> compose

A failure at any stage fails the request; nothing is retried. Nothing is
cached between requests.
"""
from __future__ import annotations

import logging
from typing import Optional

from ..config import Settings, get_settings
from ..exceptions import EmptyInputError
from ..models import ResponseEnvelope
from ..routing.country_resolver import CountryResolver
from ..routing.match_resolver import MatchResolver
from .catalog import CatalogService
from .intent_extractor import IntentExtractor
from .response_composer import ResponseComposer

logger = logging.getLogger(__name__)


class PlanFinder:
    """Sequences extraction, country lookup, plan resolution and composition."""

    def __init__(
        self,
        extractor: IntentExtractor,
        catalog: CatalogService,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.extractor = extractor
        self.catalog = catalog
        self.country_resolver = CountryResolver(catalog)
        self.match_resolver = MatchResolver(catalog, self.settings)
        self.composer = ResponseComposer(price_column=self.settings.plan_price_column)

    async def handle_request(self, text: Optional[str]) -> ResponseEnvelope:
        """
        Answer one chat message.

        Raises:
            EmptyInputError: If `text` is missing or blank
            ExtractionError: If intent extraction fails (no catalog call is made)
            CatalogError: If a catalog read fails
        """
        if text is None or not text.strip():
            raise EmptyInputError("No messages or the last message does not have a content property", field="messages")

        intent = await self.extractor.extract(text)

        country = await self.country_resolver.resolve(intent.country_name)
        if country is None:
            return self.composer.country_not_found(intent.chat_response)

        if intent.country_code and intent.country_code != country.code:
            logger.debug(f"Ignoring extracted country code {intent.country_code!r}, catalog says {country.code!r}")

        match = await self.match_resolver.resolve(
            country.code,
            amount=intent.data_amount,
            unit=intent.data_unit,
            duration=intent.duration_in_days,
        )
        envelope = self.composer.compose(country, match, intent.chat_response)
        logger.info(f"Request resolved: {match.kind} -> status {envelope.status}, {len(envelope.data)} plan(s)")
        return envelope
