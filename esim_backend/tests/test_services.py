"""Configuration, generation, retrieval and logging helpers."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from langchain_core.documents import Document

from esim_backend.config import Settings
from esim_backend.exceptions import ConfigurationError
from esim_backend.services.llm import OpenAIStructuredGenerator, create_generator
from esim_backend.services.prompts import extraction_schema
from esim_backend.services.retrieval import (
    NullRetriever,
    SupabaseContextRetriever,
    create_embeddings,
    create_retriever,
)
from esim_backend.tests.utils import InMemorySupabase, run
from esim_backend.utils.logging_security import SecureLogger


class TestSettings:
    def test_defaults(self, settings):
        assert settings.plans_table == "besim"
        assert settings.plan_price_column == "idr_price"
        assert settings.match_display_limit == 3
        assert settings.allowed_origins == ["*"]

    def test_comma_separated_origins(self):
        settings = Settings(_env_file=None, ALLOWED_ORIGINS="https://shop.example.com, https://m.example.com")

        assert settings.allowed_origins == ["https://shop.example.com", "https://m.example.com"]

    def test_display_limit_bounds(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, MATCH_DISPLAY_LIMIT=0)

    def test_service_flags(self):
        settings = Settings(_env_file=None, SUPABASE_URL="https://x.supabase.co", SUPABASE_ANON_KEY="anon", OPENAI_API_KEY="sk-test")

        assert settings.supabase_enabled is True
        assert settings.openai_enabled is True


class TestGenerator:
    def test_requires_api_key(self, settings):
        with pytest.raises(ConfigurationError):
            create_generator(settings.model_copy(update={"openai_api_key": None}))

    def test_generate_forces_function_call(self):
        with patch("esim_backend.services.llm.ChatOpenAI") as mock_chat:
            structured = MagicMock()
            structured.ainvoke = AsyncMock(return_value={"chat_response": "Halo!"})
            mock_chat.return_value.with_structured_output.return_value = structured

            generator = OpenAIStructuredGenerator(api_key="sk-test", model="gpt-3.5-turbo", temperature=1.0)
            schema = extraction_schema()
            record = run(generator.generate("prompt text", schema))

            assert record == {"chat_response": "Halo!"}
            assert mock_chat.call_args.kwargs["max_retries"] == 0
            mock_chat.return_value.with_structured_output.assert_called_once_with(schema, method="function_calling")
            structured.ainvoke.assert_awaited_once_with("prompt text")


class TestRetrieval:
    def make_retriever(self, client):
        embeddings = MagicMock()
        embeddings.aembed_query = AsyncMock(return_value=[0.1, 0.2])
        embeddings.aembed_documents = AsyncMock(side_effect=lambda texts: [[0.0, 1.0] for _ in texts])
        return SupabaseContextRetriever(client, embeddings, k=2)

    def test_retrieve_calls_match_documents(self):
        client = InMemorySupabase()
        client.rpc_results["match_documents"] = [
            {"content": "country_code: JP", "metadata": {"source": "besim.csv", "row": 0}, "similarity": 0.82},
        ]
        retriever = self.make_retriever(client)

        documents = run(retriever.retrieve("Jepang 10 hari"))

        assert documents == [
            Document(page_content="country_code: JP", metadata={"source": "besim.csv", "row": 0, "similarity": 0.82}),
        ]
        (call,) = client.calls
        assert call["params"] == {"query_embedding": [0.1, 0.2], "match_count": 2}

    def test_add_documents_and_clear(self):
        client = InMemorySupabase()
        retriever = self.make_retriever(client)

        written = run(retriever.add_documents(
            [Document(page_content=f"row {i}", metadata={"row": i}) for i in range(3)],
            batch_size=2,
        ))

        assert written == 3
        assert client.tables["documents"][0] == {"content": "row 0", "metadata": {"row": 0}, "embedding": [0.0, 1.0]}

        run(retriever.clear())
        assert client.tables["documents"] == []

    def test_disabled_retrieval(self, settings):
        assert isinstance(create_retriever(InMemorySupabase(), settings), NullRetriever)
        assert run(NullRetriever().retrieve("anything")) == []

    def test_embeddings_require_api_key(self, settings):
        with pytest.raises(ConfigurationError):
            create_embeddings(settings.model_copy(update={"openai_api_key": None}))


class TestSecureLogger:
    def test_redacts_contact_details(self):
        text = SecureLogger.redact("email saya budi@example.com, hp +62 812 3456 7890")

        assert "budi@example.com" not in text
        assert "[EMAIL_REDACTED]" in text
        assert "[PHONE_REDACTED]" in text

    def test_redacts_api_keys(self):
        assert SecureLogger.redact("key sk-abcdefghijklmnopqrstuvwx") == "key [API_KEY_REDACTED]"

    def test_preview_truncates(self):
        preview = SecureLogger.preview("Jepang " * 40, limit=20)

        assert preview.endswith("...[TRUNCATED]")
        assert len(preview) < 40

    def test_sensitive_headers(self):
        headers = SecureLogger.sanitize_headers({"apikey": "anon-key", "Content-Type": "application/json"})

        assert headers == {"apikey": "[REDACTED]", "Content-Type": "application/json"}

    def test_response_category(self):
        assert SecureLogger.response_fields("req_1", 404, 12.345)["status_category"] == "client_error"


def test_catalog_health_check(catalog, supabase, settings):
    assert run(catalog.health_check()) is True

    supabase.fail(settings.countries_table)
    assert run(catalog.health_check()) is False
