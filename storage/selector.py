"""
Backend selection and per-request fallback.

``is_persistent_available()`` reports the live state of the database
connection. A :class:`StorageSession` consults it once when a request starts
and keeps that choice for the whole request; if the persistent backend fails
with a connectivity error mid-request, the failed operation is replayed on
the volatile backend and the session stays there until the request ends.
"""
from typing import Any, Optional

from core.logging import get_logger
from db_config import db_manager
from storage.errors import ConnectivityError
from storage.persistent import PersistentBackend
from storage.volatile import VolatileBackend, VolatileStore

logger = get_logger("storage")

volatile_store = VolatileStore()
volatile_backend = VolatileBackend(volatile_store)
persistent_backend = PersistentBackend(db_manager)


def _available(backend: PersistentBackend) -> bool:
    try:
        return backend.is_available()
    except Exception as e:  # a failing probe means unavailable
        logger.warning("Persistent availability check failed", error=str(e))
        return False


def is_persistent_available() -> bool:
    """True when the persistent backend is connected. Never raises."""
    return _available(persistent_backend)


class _RoutedRepository:
    """Forwards repository calls for one collection through the session."""

    def __init__(self, session: "StorageSession", collection: str):
        self._session = session
        self._collection = collection

    def __getattr__(self, method: str):
        async def call(*args, **kwargs):
            return await self._session.call(self._collection, method, *args, **kwargs)
        call.__name__ = method
        return call


class StorageSession:
    """Routes entity operations for a single inbound request."""

    def __init__(self, persistent: Optional[PersistentBackend] = None, volatile: Optional[VolatileBackend] = None):
        self._persistent = persistent or persistent_backend
        self._volatile = volatile or volatile_backend
        self.backend = self._persistent if _available(self._persistent) else self._volatile
        self.accounts = _RoutedRepository(self, "accounts")
        self.resources = _RoutedRepository(self, "resources")
        self.generations = _RoutedRepository(self, "generations")

    @property
    def mode(self) -> str:
        return self.backend.name

    async def call(self, collection: str, method: str, *args, **kwargs) -> Any:
        backend = self.backend
        operation = getattr(getattr(backend, collection), method)
        try:
            return await operation(*args, **kwargs)
        except ConnectivityError as e:
            if backend is self._volatile:
                raise
            logger.warning(
                "Falling back to in-memory storage",
                operation=f"{collection}.{method}",
                cause=str(e),
            )
            self.backend = self._volatile
            return await getattr(getattr(self._volatile, collection), method)(*args, **kwargs)


def get_storage() -> StorageSession:
    """FastAPI dependency: one pinned storage session per request."""
    return StorageSession(persistent_backend, volatile_backend)


def storage_mode() -> str:
    return "persistent" if is_persistent_available() else "volatile"
