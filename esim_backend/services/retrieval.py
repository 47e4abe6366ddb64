"""
Semantic context retrieval backed by Supabase pgvector.

Documents live in the `documents` table (content, metadata, embedding) and
are searched through the `match_documents` SQL function, the layout used by
LangChain's Supabase vector store. Retrieved documents only enrich the
extraction prompt; the match resolver never reads them.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.documents import Document
from langchain_openai import OpenAIEmbeddings

from ..config import Settings, get_settings
from ..exceptions import ConfigurationError
from .async_supabase import AsyncSupabase

logger = logging.getLogger(__name__)


class ContextRetriever(ABC):
    """Given a query string, return the K most relevant reference documents."""

    @abstractmethod
    async def retrieve(self, query: str) -> List[Document]:
        pass


class NullRetriever(ContextRetriever):
    """Retriever used when the semantic index is disabled."""

    async def retrieve(self, query: str) -> List[Document]:
        return []


class SupabaseContextRetriever(ContextRetriever):
    """
    OpenAI embeddings + Supabase `match_documents` RPC.

    Also owns writes to the documents table so the import script and the
    request path agree on the row layout.
    """

    def __init__(
        self,
        client: AsyncSupabase,
        embeddings: OpenAIEmbeddings,
        table: str = "documents",
        query_function: str = "match_documents",
        k: int = 4,
    ):
        self.client = client
        self.embeddings = embeddings
        self.table = table
        self.query_function = query_function
        self.k = k

    async def retrieve(self, query: str) -> List[Document]:
        embedding = await self.embeddings.aembed_query(query)
        rows = await self.client.rpc(
            self.query_function,
            {"query_embedding": embedding, "match_count": self.k},
            timeout=10.0,
        )
        documents = [self._row_to_document(row) for row in rows or []]
        logger.debug(f"Retrieved {len(documents)} context document(s)")
        return documents

    async def add_documents(self, documents: Sequence[Document], batch_size: int = 100) -> int:
        """Embed and insert documents. Returns the number of rows written."""
        written = 0
        for start in range(0, len(documents), batch_size):
            batch = list(documents[start:start + batch_size])
            vectors = await self.embeddings.aembed_documents([doc.page_content for doc in batch])
            rows = [
                {
                    "content": doc.page_content,
                    "metadata": doc.metadata,
                    "embedding": vector,
                }
                for doc, vector in zip(batch, vectors)
            ]
            await self.client.insert(self.table, rows, timeout=30.0)
            written += len(rows)
            logger.info(f"Indexed {written}/{len(documents)} documents")
        return written

    async def clear(self) -> None:
        """Remove every indexed document so a re-import does not duplicate rows."""
        await self.client.delete_all(self.table, key_column="id", timeout=30.0)

    @staticmethod
    def _row_to_document(row: Dict[str, Any]) -> Document:
        metadata = dict(row.get("metadata") or {})
        if row.get("similarity") is not None:
            metadata["similarity"] = row["similarity"]
        return Document(page_content=row.get("content") or "", metadata=metadata)


def create_embeddings(settings: Optional[Settings] = None) -> OpenAIEmbeddings:
    settings = settings or get_settings()
    if not settings.openai_enabled:
        raise ConfigurationError("OpenAI API key is required. Set OPENAI_API_KEY env var.")
    return OpenAIEmbeddings(
        model=settings.embedding_model,
        api_key=settings.openai_api_key,
    )


def create_retriever(client: AsyncSupabase, settings: Optional[Settings] = None) -> ContextRetriever:
    """Configured retriever, or NullRetriever when ENABLE_RETRIEVAL is off."""
    settings = settings or get_settings()
    if not settings.enable_retrieval:
        logger.info("Context retrieval disabled (ENABLE_RETRIEVAL=false)")
        return NullRetriever()

    return SupabaseContextRetriever(
        client=client,
        embeddings=create_embeddings(settings),
        table=settings.documents_table,
        query_function=settings.match_documents_function,
        k=settings.retrieval_k,
    )
