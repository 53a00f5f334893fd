"""
Persistent backend: SQLAlchemy repositories over the async engine.

Driver and connection failures are translated into
:class:`~storage.errors.ConnectivityError` so the selector can fall back to
the volatile backend; integrity and schema violations surface as
:class:`~storage.errors.EntityValidationError` and are never retried.
"""
import asyncio
import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, delete, func, literal_column, or_, select, true, update
from sqlalchemy.exc import (
    DataError, DBAPIError, DisconnectionError, IntegrityError, InterfaceError, OperationalError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from core.logging import get_logger
from db_config import DatabaseManager
from models.models import Account, GenerationRecord, Resource, new_object_id
from schemas.documents import (
    AccountDocument,
    GenerationDocument,
    ResourceDocument,
    validate_document,
)
from storage.errors import ConnectivityError, DuplicateKeyError, EntityValidationError
from storage.query import DocumentQuery, FindOptions

logger = get_logger("storage")

SYSTEM_FIELDS = ("id", "created_at", "updated_at")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands timestamps back without tzinfo.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PersistentRepository:
    """CRUD for one table, speaking the same dict documents as the volatile store."""

    model = None
    schema = None
    # document key -> mapped attribute, where they differ
    columns: Dict[str, str] = {}
    unique_fields: Tuple[str, ...] = ()

    def __init__(self, database: DatabaseManager):
        self.database = database

    def _attr(self, key: str):
        return getattr(self.model, self.columns.get(key, key))

    def _to_document(self, row) -> Dict[str, Any]:
        document = {"id": row.id}
        for key in self.schema.model_fields:
            document[key] = copy.deepcopy(getattr(row, self.columns.get(key, key)))
        document["created_at"] = _aware(row.created_at)
        document["updated_at"] = _aware(row.updated_at)
        if "last_login_at" in document:
            document["last_login_at"] = _aware(document["last_login_at"])
        return document

    def _assign(self, row, document: Dict[str, Any]):
        for key in self.schema.model_fields:
            if key in document:
                setattr(row, self.columns.get(key, key), copy.deepcopy(document[key]))

    def _where(self, query: Optional[DocumentQuery]) -> list:
        if query is None:
            return []
        clauses = [self._attr(key) == value for key, value in query.filters.items()]
        if query.any_of:
            clauses.append(or_(*[
                and_(*[self._attr(key) == value for key, value in group.items()]) if group else true()
                for group in query.any_of
            ]))
        if query.text and query.text.strip():
            clauses.append(self._text_clause(query.text))
        return clauses

    def _text_clause(self, text: str):
        raise EntityValidationError(f"Text search is not supported for {self.model.__tablename__}")

    def _sort_column(self, name: str):
        return self._attr(name)

    async def _run(self, operation: str, work):
        try:
            async with self.database.session() as session:
                return await work(session)
        except IntegrityError as e:
            message = str(e.orig).lower()
            conflicts = [name for name in self.unique_fields if name in message]
            if conflicts or "unique" in message or "duplicate" in message:
                raise DuplicateKeyError(conflicts or list(self.unique_fields)) from e
            raise EntityValidationError("Validation failed", [{"field": "", "message": str(e.orig)}]) from e
        except DataError as e:
            # Values the column type rejects, such as strings over a VARCHAR length.
            raise EntityValidationError("Validation failed", [{"field": "", "message": str(e.orig)}]) from e
        except DBAPIError as e:
            if isinstance(e, (OperationalError, InterfaceError)) or e.connection_invalidated:
                self._lost(operation, e)
                raise ConnectivityError(operation, e) from e
            raise
        except (DisconnectionError, PoolTimeoutError, OSError, asyncio.TimeoutError) as e:
            self._lost(operation, e)
            raise ConnectivityError(operation, e) from e

    def _lost(self, operation: str, error: BaseException):
        logger.warning(
            "Persistent storage operation failed",
            operation=f"{self.model.__tablename__}.{operation}",
            error=str(error),
        )
        self.database.mark_disconnected(str(error))

    async def _load(self, session, record_id: str, for_update: bool = False):
        stmt = select(self.model).where(self.model.id == record_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def _check_unique(self, session, document: Dict[str, Any], exclude_id: Optional[str] = None):
        if not self.unique_fields:
            return
        stmt = select(self.model).where(
            or_(*[self._attr(name) == document.get(name) for name in self.unique_fields])
        )
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        rows = (await session.execute(stmt)).scalars().all()
        conflicts = [
            name for name in self.unique_fields
            if any(getattr(row, name) == document.get(name) for row in rows)
        ]
        if conflicts:
            raise DuplicateKeyError(conflicts)

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        document = validate_document(self.schema, data)

        async def work(session):
            await self._check_unique(session, document)
            now = utcnow()
            row = self.model(id=new_object_id(), created_at=now, updated_at=now)
            self._assign(row, document)
            session.add(row)
            await session.commit()
            return self._to_document(row)

        return await self._run("create", work)

    async def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        async def work(session):
            row = await self._load(session, record_id)
            return self._to_document(row) if row is not None else None

        return await self._run("get", work)

    async def find_one(self, query: DocumentQuery) -> Optional[Dict[str, Any]]:
        matches = await self.find(query, FindOptions(limit=1))
        return matches[0] if matches else None

    async def find(
        self, query: Optional[DocumentQuery] = None, options: Optional[FindOptions] = None
    ) -> List[Dict[str, Any]]:
        options = options or FindOptions()

        async def work(session):
            stmt = select(self.model).where(*self._where(query))
            if options.sort_by:
                column = self._sort_column(options.sort_by)
                stmt = stmt.order_by(column.desc() if options.descending else column.asc())
            stmt = stmt.order_by(self.model.seq.asc())
            if options.skip:
                stmt = stmt.offset(options.skip)
            if options.limit is not None:
                stmt = stmt.limit(options.limit)
            result = await session.execute(stmt)
            return [self._to_document(row) for row in result.scalars().all()]

        return await self._run("find", work)

    async def count(self, query: Optional[DocumentQuery] = None) -> int:
        async def work(session):
            stmt = select(func.count(self.model.seq)).where(*self._where(query))
            return (await session.execute(stmt)).scalar_one()

        return await self._run("count", work)

    async def update(
        self, record_id: str, changes: Dict[str, Any], validate: bool = True
    ) -> Optional[Dict[str, Any]]:
        async def work(session):
            row = await self._load(session, record_id, for_update=True)
            if row is None:
                return None
            merged = {k: v for k, v in self._to_document(row).items() if k not in SYSTEM_FIELDS}
            merged.update(copy.deepcopy(changes))
            document = validate_document(self.schema, merged) if validate else merged
            await self._check_unique(session, document, exclude_id=record_id)
            self._assign(row, document)
            row.updated_at = utcnow()
            await session.commit()
            return self._to_document(row)

        return await self._run("update", work)

    async def delete(self, record_id: str) -> bool:
        async def work(session):
            result = await session.execute(delete(self.model).where(self.model.id == record_id))
            await session.commit()
            return result.rowcount > 0

        return await self._run("delete", work)


class PersistentAccountRepository(PersistentRepository):
    model = Account
    schema = AccountDocument
    unique_fields = ("username", "email")

    async def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return await self.find_one(DocumentQuery(filters={"email": email.strip().lower()}))


class PersistentResourceRepository(PersistentRepository):
    model = Resource
    schema = ResourceDocument
    columns = {"metadata": "resource_metadata"}

    def _assign(self, row, document):
        super()._assign(row, document)
        # Denormalized columns for search and like-count sorting. search_text is stored
        # lowercased; SQLite's lower() folds ASCII only.
        row.search_text = " ".join(
            [document.get("title") or "", document.get("description") or ""] + list(document.get("tags") or [])
        ).lower()
        row.likes_count = len(document.get("likes") or [])

    def _sort_column(self, name: str):
        if name == "likes":
            return Resource.likes_count
        return super()._sort_column(name)

    def _text_clause(self, text: str):
        terms = [term for term in text.lower().split() if term]
        if self.database.dialect_name == "postgresql":
            vector = func.to_tsvector(literal_column("'simple'"), Resource.search_text)
            return or_(*[
                vector.op("@@")(func.plainto_tsquery(literal_column("'simple'"), term)) for term in terms
            ])
        return or_(*[Resource.search_text.contains(term, autoescape=True) for term in terms])

    async def increment_views(self, record_id: str) -> Optional[Dict[str, Any]]:
        async def work(session):
            result = await session.execute(
                update(Resource)
                .where(Resource.id == record_id)
                .values(views=Resource.views + 1, updated_at=utcnow())
            )
            if result.rowcount == 0:
                return None
            await session.commit()
            row = await self._load(session, record_id)
            return self._to_document(row) if row is not None else None

        return await self._run("increment_views", work)

    async def toggle_like(self, record_id: str, account_id: str) -> Optional[Tuple[Dict[str, Any], bool]]:
        async def work(session):
            row = await self._load(session, record_id, for_update=True)
            if row is None:
                return None
            likes = list(row.likes or [])
            if account_id in likes:
                likes.remove(account_id)
                liked = False
            else:
                likes.append(account_id)
                liked = True
            row.likes = likes
            row.likes_count = len(likes)
            row.updated_at = utcnow()
            await session.commit()
            return self._to_document(row), liked

        return await self._run("toggle_like", work)


class PersistentGenerationRepository(PersistentRepository):
    model = GenerationRecord
    schema = GenerationDocument
    columns = {"metadata": "generation_metadata"}


class PersistentBackend:
    """The three SQLAlchemy repositories over one database manager."""

    name = "persistent"

    def __init__(self, database: DatabaseManager):
        self.database = database
        self.accounts = PersistentAccountRepository(database)
        self.resources = PersistentResourceRepository(database)
        self.generations = PersistentGenerationRepository(database)

    def is_available(self) -> bool:
        return self.database.is_connected()
