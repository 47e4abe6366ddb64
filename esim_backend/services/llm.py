"""
Structured generation layer

The extractor only needs one capability from a language model: given a
prompt and a JSON schema, return a record conforming to that schema. The
capability sits behind BaseStructuredGenerator so tests and alternative
backends can stand in for OpenAI.

Generation is non-deterministic: the same text can yield a different record
on a second call, so nothing here retries or caches.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import logging

from langchain_openai import ChatOpenAI

from ..config import Settings, get_settings
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class BaseStructuredGenerator(ABC):
    """Base class for schema-constrained generation backends"""

    @abstractmethod
    async def generate(self, prompt: str, schema: Dict[str, Any]) -> Any:
        """
        Generate a structured record

        Args:
            prompt: Fully rendered prompt text
            schema: JSON schema with top-level "title" (function name) and
                "description"

        Returns:
            Parsed record (normally a dict); validation is the caller's job
        """
        pass


class OpenAIStructuredGenerator(BaseStructuredGenerator):
    """
    OpenAI chat model forced to call a single formatting function.

    The schema is bound as the only tool and tool_choice forces the call, so
    the reply is the function arguments rather than free text.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        temperature: float = 1.0,
        timeout: float = 60.0,
    ):
        if not api_key:
            raise ConfigurationError("OpenAI API key is required. Set OPENAI_API_KEY env var.")

        self.model = model
        self.llm = ChatOpenAI(
            model=model,
            api_key=api_key,
            temperature=temperature,
            timeout=timeout,
            max_retries=0,
        )
        logger.info(f"OpenAIStructuredGenerator initialized, model: {model}")

    async def generate(self, prompt: str, schema: Dict[str, Any]) -> Any:
        structured_llm = self.llm.with_structured_output(schema, method="function_calling")
        logger.debug(f"Structured generation via {self.model} ({schema.get('title')})")
        return await structured_llm.ainvoke(prompt)


def create_generator(settings: Optional[Settings] = None) -> BaseStructuredGenerator:
    """
    Factory for the configured generation backend

    Environment Variables:
        OPENAI_API_KEY: OpenAI API key
        LLM_MODEL: Chat model to use
        LLM_TEMPERATURE: Sampling temperature
        LLM_TIMEOUT: Request timeout in seconds

    Raises:
        ConfigurationError: If credentials are missing
    """
    settings = settings or get_settings()
    return OpenAIStructuredGenerator(
        api_key=settings.openai_api_key,
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        timeout=settings.llm_timeout,
    )
