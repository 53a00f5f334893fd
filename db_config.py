"""
Database configuration and connection state for the persistent backend.

The :class:`DatabaseManager` owns the async engine and tracks whether the
database is currently reachable. The state is driven by the driver itself:
SQLAlchemy ``connect`` and ``handle_error`` events flip it as connections are
made or lost, and a background probe re-establishes it after an outage.
"""
import asyncio
import enum
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from core.config import settings
from core.logging import get_logger
from storage.errors import ConnectivityError

logger = get_logger("database")

# Create Base class
Base = declarative_base()


class ConnectionState(str, enum.Enum):
    disconnected = "disconnected"
    connecting = "connecting"
    connected = "connected"


class DatabaseManager:
    """Owns the async engine, the session factory and the live connection state."""

    def __init__(self, url: Optional[str] = None, enabled: Optional[bool] = None):
        self.url = url or settings.database_url
        self.enabled = settings.database_enabled if enabled is None else enabled
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None
        self._state = ConnectionState.disconnected
        self._schema_ready = False
        self._reconnect_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def dialect_name(self) -> Optional[str]:
        return self.engine.dialect.name if self.engine is not None else None

    def is_connected(self) -> bool:
        return self.engine is not None and self._state is ConnectionState.connected

    def _build_engine(self) -> AsyncEngine:
        options = {"echo": settings.enable_sql_logging}
        if self.url.startswith("sqlite"):
            # One connection per session; aiosqlite connections are bound to the loop that opened them.
            options["poolclass"] = NullPool
            options["connect_args"] = {"timeout": settings.database_connect_timeout}
        else:
            options.update(
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_pre_ping=True,
                pool_recycle=3600,
                pool_timeout=settings.database_connect_timeout,
                connect_args={"timeout": settings.database_connect_timeout},
            )

        engine = create_async_engine(self.url, **options)
        event.listen(engine.sync_engine, "connect", self._on_driver_connect)
        event.listen(engine.sync_engine, "handle_error", self._on_driver_error)
        return engine

    def _on_driver_connect(self, dbapi_connection, connection_record):
        if self._schema_ready and self._state is not ConnectionState.connected:
            self._state = ConnectionState.connected
            logger.info("Persistent storage connection re-established")

    def _on_driver_error(self, context):
        if context.is_disconnect:
            self.mark_disconnected(str(context.original_exception))

    def mark_disconnected(self, reason: str = ""):
        if self._state is not ConnectionState.disconnected:
            logger.warning("Persistent storage disconnected", reason=reason)
        self._state = ConnectionState.disconnected

    async def connect(self) -> bool:
        """Open the engine and make sure the schema exists. Returns reachability."""
        if not self.enabled:
            logger.info("Persistent storage disabled, serving from in-memory store")
            return False

        if self.engine is None:
            self.engine = self._build_engine()
            self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)

        import models.models  # noqa: F401  registers the tables on Base.metadata

        self._state = ConnectionState.connecting
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            self._state = ConnectionState.disconnected
            logger.warning("Persistent storage unreachable, serving from in-memory store", error=str(e))
            return False

        self._schema_ready = True
        self._state = ConnectionState.connected
        logger.info("Persistent storage connected", dialect=self.dialect_name)
        return True

    async def probe(self) -> bool:
        """Check reachability with a trivial round trip, reconnecting if needed."""
        if not self._schema_ready:
            return await self.connect()
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            self.mark_disconnected(str(e))
            return False
        if self._state is not ConnectionState.connected:
            self._state = ConnectionState.connected
            logger.info("Persistent storage reachable again")
        return True

    async def _reconnect_loop(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            await self.probe()

    def start_reconnect_task(self, interval: Optional[float] = None):
        if not self.enabled or self._reconnect_task is not None:
            return
        interval = interval or settings.database_reconnect_interval_seconds
        self._reconnect_task = asyncio.create_task(self._reconnect_loop(interval))

    @asynccontextmanager
    async def session(self):
        if self.session_factory is None:
            raise ConnectivityError("session")
        async with self.session_factory() as session:
            yield session

    async def dispose(self):
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
            self._reconnect_task = None
        if self.engine is not None:
            await self.engine.dispose()
        self._state = ConnectionState.disconnected


# Process-wide manager used by the application
db_manager = DatabaseManager()
