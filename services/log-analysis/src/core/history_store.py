"""
BugSage - Analysis History Store
================================

Persistence for saved analyses.

Backends:
- InMemoryHistoryStore: thread-safe process-local storage for
  development and tests
- SupabaseHistoryStore: the ``analysis_history`` table behind Supabase's
  PostgREST API, called with the user's own bearer token so row-level
  security applies

Every operation is scoped to the authenticated user; an item owned by
someone else behaves exactly like a missing one.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Optional
import uuid

import httpx
from pydantic import ValidationError

from src.api.schemas import AnalysisContext, AnalysisHistoryItem
from src.config import get_settings, HistoryBackend, Settings
from src.core.errors import HistoryItemNotFoundError, PersistenceError
from shared.utils.http_client import RestClient, RestClientConfig
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# Singleton instance
_store_instance: Optional["BaseHistoryStore"] = None


class BaseHistoryStore(ABC):
    """Base class for analysis history backends."""

    @abstractmethod
    async def save(
        self,
        user_id: str,
        logs: str,
        context: AnalysisContext,
        analysis: str,
        token: str
    ) -> AnalysisHistoryItem:
        """Save an analysis; the store assigns ``id`` and ``created_at``."""
        pass

    @abstractmethod
    async def list_items(self, user_id: str, token: str) -> list[AnalysisHistoryItem]:
        """Return the user's analyses, newest first."""
        pass

    @abstractmethod
    async def update_analysis(
        self,
        item_id: str,
        analysis: str,
        user_id: str,
        token: str
    ) -> AnalysisHistoryItem:
        """Replace the analysis text of one item."""
        pass

    @abstractmethod
    async def delete(self, item_id: str, user_id: str, token: str) -> None:
        """Delete one item."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass


class InMemoryHistoryStore(BaseHistoryStore):
    """
    Thread-safe in-memory history storage.

    Tokens are accepted but not checked; the API layer has already
    resolved the user.
    """

    def __init__(self):
        self._items: dict[str, AnalysisHistoryItem] = {}
        self._lock = Lock()

    def _owned(self, item_id: str, user_id: str) -> AnalysisHistoryItem:
        item = self._items.get(item_id)
        if item is None or item.user_id != user_id:
            raise HistoryItemNotFoundError(item_id)
        return item

    async def save(self, user_id, logs, context, analysis, token) -> AnalysisHistoryItem:
        item = AnalysisHistoryItem(
            id=str(uuid.uuid4()),
            user_id=user_id,
            logs=logs,
            context=context,
            analysis=analysis,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._items[item.id] = item
        logger.info(f"Saved analysis {item.id}", extra={"history_id": item.id})
        return item

    async def list_items(self, user_id, token) -> list[AnalysisHistoryItem]:
        with self._lock:
            items = [i for i in self._items.values() if i.user_id == user_id]
        items.sort(key=lambda i: i.created_at, reverse=True)
        return items

    async def update_analysis(self, item_id, analysis, user_id, token) -> AnalysisHistoryItem:
        with self._lock:
            item = self._owned(item_id, user_id)
            updated = item.model_copy(update={"analysis": analysis})
            self._items[item_id] = updated
        logger.info(f"Updated analysis {item_id}", extra={"history_id": item_id})
        return updated

    async def delete(self, item_id, user_id, token) -> None:
        with self._lock:
            self._owned(item_id, user_id)
            del self._items[item_id]
        logger.info(f"Deleted analysis {item_id}", extra={"history_id": item_id})


class SupabaseHistoryStore(BaseHistoryStore):
    """
    History stored in a Supabase table, reached through PostgREST.

    Row ownership is enforced by the database's row-level security using
    the caller's token; ``user_id`` filters are added as well so the
    store never returns another user's rows even under a permissive
    policy.
    """

    SELECT_COLUMNS = "id,user_id,logs,context,analysis,created_at"

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not settings.supabase_url or not settings.supabase_anon_key:
            raise PersistenceError("SUPABASE_URL and SUPABASE_ANON_KEY must be set for the supabase backend")

        self.rest_url = f"{settings.supabase_url.rstrip('/')}/rest/v1"
        self.table_path = f"/{settings.supabase_table}"
        self.anon_key = settings.supabase_anon_key
        self.timeout_seconds = settings.supabase_timeout_seconds
        self._transport = transport

    def _client(self, token: str) -> RestClient:
        return RestClient(
            self.rest_url,
            default_headers={
                "apikey": self.anon_key,
                "Prefer": "return=representation",
            },
            bearer_token=token,
            config=RestClientConfig(timeout_seconds=self.timeout_seconds),
            transport=self._transport,
        )

    async def _send(
        self,
        token: str,
        method: str,
        params: dict[str, str],
        json: Optional[Any] = None
    ) -> list[dict]:
        try:
            async with self._client(token) as client:
                response = await client.request(method, self.table_path, params=params, json=json)
        except httpx.HTTPError as e:
            logger.error(f"Supabase {method} failed: {e}")
            raise PersistenceError(f"History store unreachable: {e}") from e

        if response.status_code >= 400:
            logger.error(
                f"Supabase {method} returned status {response.status_code}",
                extra={"status": response.status_code, "body": response.text[:500]}
            )
            raise PersistenceError(f"History store returned status {response.status_code}")

        if not response.content:
            return []

        body = response.json()
        return body if isinstance(body, list) else [body]

    def _to_item(self, row: dict) -> AnalysisHistoryItem:
        try:
            return AnalysisHistoryItem.model_validate(row)
        except ValidationError as e:
            raise PersistenceError(f"Malformed history row: {e}") from e

    async def save(self, user_id, logs, context, analysis, token) -> AnalysisHistoryItem:
        rows = await self._send(
            token,
            "POST",
            params={"select": self.SELECT_COLUMNS},
            json=[{
                "user_id": user_id,
                "logs": logs,
                "context": context.model_dump(),
                "analysis": analysis,
            }],
        )
        if not rows:
            raise PersistenceError("History store did not return the saved row")

        item = self._to_item(rows[0])
        logger.info(f"Saved analysis {item.id}", extra={"history_id": item.id})
        return item

    async def list_items(self, user_id, token) -> list[AnalysisHistoryItem]:
        rows = await self._send(
            token,
            "GET",
            params={
                "select": self.SELECT_COLUMNS,
                "user_id": f"eq.{user_id}",
                "order": "created_at.desc",
            },
        )
        return [self._to_item(row) for row in rows]

    async def update_analysis(self, item_id, analysis, user_id, token) -> AnalysisHistoryItem:
        rows = await self._send(
            token,
            "PATCH",
            params={
                "id": f"eq.{item_id}",
                "user_id": f"eq.{user_id}",
                "select": self.SELECT_COLUMNS,
            },
            json={"analysis": analysis},
        )
        if not rows:
            raise HistoryItemNotFoundError(item_id)

        logger.info(f"Updated analysis {item_id}", extra={"history_id": item_id})
        return self._to_item(rows[0])

    async def delete(self, item_id, user_id, token) -> None:
        rows = await self._send(
            token,
            "DELETE",
            params={
                "id": f"eq.{item_id}",
                "user_id": f"eq.{user_id}",
                "select": "id",
            },
        )
        if not rows:
            raise HistoryItemNotFoundError(item_id)

        logger.info(f"Deleted analysis {item_id}", extra={"history_id": item_id})


def get_history_store() -> BaseHistoryStore:
    """
    Get the singleton history store.

    Returns the backend selected by configuration.
    """
    global _store_instance

    if _store_instance is None:
        settings = get_settings()
        if settings.history_backend == HistoryBackend.SUPABASE:
            _store_instance = SupabaseHistoryStore(settings)
        else:
            _store_instance = InMemoryHistoryStore()

    return _store_instance


def reset_history_store() -> None:
    """Drop the singleton so the next call rebuilds it from settings."""
    global _store_instance
    _store_instance = None
