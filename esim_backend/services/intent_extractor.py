"""
Intent extraction: free text -> IntentRecord.

The record comes from one schema-constrained generation call. Missing fields
become None (never 0 or ""), because the match resolver treats None as "skip
this filter" and 0 as a real constraint. Any failure raises ExtractionError;
an empty record would look like "no constraints" and scan the whole catalog.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from langchain_core.documents import Document
from langchain_core.prompts import PromptTemplate
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import CatalogError, ExtractionError
from ..models import IntentRecord
from .llm import BaseStructuredGenerator
from .prompts import EXTRACTION_FIELDS, EXTRACTION_TEMPLATE, extraction_schema
from .retrieval import ContextRetriever, NullRetriever

logger = logging.getLogger(__name__)


def normalize_record(raw: Any) -> Dict[str, Any]:
    """
    Coerce a generated record onto the extraction fields.

    Absent fields and blank strings become None; unknown keys are dropped.

    Raises:
        ExtractionError: If the record is not a mapping
    """
    if not isinstance(raw, dict):
        raise ExtractionError(
            f"Generation returned {type(raw).__name__}, expected a structured record"
        )

    normalized: Dict[str, Any] = {}
    for name in EXTRACTION_FIELDS:
        value = raw.get(name)
        if isinstance(value, str) and not value.strip():
            value = None
        normalized[name] = value
    return normalized


class IntentExtractor:
    """Extracts an IntentRecord from a user message."""

    def __init__(
        self,
        generator: BaseStructuredGenerator,
        retriever: Optional[ContextRetriever] = None,
    ):
        self.generator = generator
        self.retriever = retriever or NullRetriever()
        self.prompt = PromptTemplate.from_template(EXTRACTION_TEMPLATE)
        self.schema = extraction_schema()

    async def _context(self, text: str) -> str:
        try:
            documents: List[Document] = await self.retriever.retrieve(text)
        except CatalogError as e:
            raise ExtractionError(f"Context retrieval failed: {e.message}") from e
        except Exception as e:
            raise ExtractionError(f"Context retrieval failed: {e}") from e

        return json.dumps(
            [{"page_content": doc.page_content, "metadata": doc.metadata} for doc in documents],
            ensure_ascii=False,
            default=str,
        )

    async def extract(self, text: str) -> IntentRecord:
        """
        Extract intent fields and the conversational reply from `text`.

        The caller must reject empty input before calling.

        Raises:
            ExtractionError: On retrieval/generation failure or a record that
                does not conform to the schema
        """
        context = await self._context(text)
        prompt = self.prompt.format(context=context, input=text)

        try:
            raw = await self.generator.generate(prompt, self.schema)
        except Exception as e:
            logger.error(f"Generation failed: {e}")
            raise ExtractionError(f"Generation failed: {e}") from e

        record = normalize_record(raw)
        if record["chat_response"] is None:
            raise ExtractionError("Generated record has no chat_response")

        try:
            intent = IntentRecord.model_validate(record)
        except PydanticValidationError as e:
            raise ExtractionError(
                f"Generated record does not match the schema: {e}",
                details={"record": record},
            ) from e

        logger.info(
            "Extracted intent: country=%r amount=%s unit=%s duration=%s",
            intent.country_name,
            intent.data_amount,
            intent.data_unit.value if intent.data_unit else None,
            intent.duration_in_days,
        )
        return intent
