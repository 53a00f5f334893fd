"""
In-process volatile backend.

Used whenever the persistent database is unreachable. Records live in plain
Python containers for the lifetime of the process and are lost on restart.
The repositories expose the same coroutine interface as
:mod:`storage.persistent`; none of their method bodies await, so each call
(including the uniqueness check followed by the insert) runs without
yielding to the event loop.
"""
import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from schemas.documents import (
    AccountDocument,
    GenerationDocument,
    ResourceDocument,
    validate_document,
)
from storage.errors import DuplicateKeyError
from storage.query import DocumentQuery, FindOptions

SYSTEM_FIELDS = ("id", "created_at", "updated_at")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _sort_key(field_name: str):
    def key(record: Dict[str, Any]):
        value = record.get(field_name)
        if field_name == "likes":
            return len(value or [])
        return value
    return key


class VolatileStore:
    """Holds the in-memory collections and the identifier counters."""

    def __init__(self):
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.resources: List[Dict[str, Any]] = []
        self.generations: List[Dict[str, Any]] = []
        self._counters = {"user": 0, "resource": 0, "generation": 0}

    def next_id(self, prefix: str) -> str:
        self._counters[prefix] += 1
        return f"{prefix}_{self._counters[prefix]}"

    def reset(self):
        """Drop every record and restart the identifier counters."""
        self.accounts.clear()
        self.resources.clear()
        self.generations.clear()
        for prefix in self._counters:
            self._counters[prefix] = 0


class VolatileRepository:
    """Shared CRUD over one ordered collection of dict records."""

    id_prefix = ""
    schema = None
    text_fields: Tuple[str, ...] = ()
    unique_fields: Tuple[str, ...] = ()

    def __init__(self, store: VolatileStore):
        self.store = store

    # Collection access, overridden for the account mapping.
    def _records(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def _insert(self, record: Dict[str, Any]):
        self._records().append(record)

    def _replace(self, record: Dict[str, Any]):
        records = self._records()
        for index, existing in enumerate(records):
            if existing["id"] == record["id"]:
                records[index] = record
                return

    def _remove(self, record_id: str) -> bool:
        records = self._records()
        for index, existing in enumerate(records):
            if existing["id"] == record_id:
                del records[index]
                return True
        return False

    def _lookup(self, record_id: str) -> Optional[Dict[str, Any]]:
        for record in self._records():
            if record["id"] == record_id:
                return record
        return None

    def _check_unique(self, document: Dict[str, Any], exclude_id: Optional[str] = None):
        if not self.unique_fields:
            return
        conflicts = []
        for record in self._records():
            if record["id"] == exclude_id:
                continue
            for name in self.unique_fields:
                if record.get(name) == document.get(name) and name not in conflicts:
                    conflicts.append(name)
        if conflicts:
            raise DuplicateKeyError(conflicts)

    def _select(self, query: Optional[DocumentQuery]) -> List[Dict[str, Any]]:
        query = query or DocumentQuery()
        return [r for r in self._records() if query.matches(r, self.text_fields)]

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        document = validate_document(self.schema, data)
        self._check_unique(document)
        now = utcnow()
        record = {"id": self.store.next_id(self.id_prefix), **document, "created_at": now, "updated_at": now}
        self._insert(record)
        return copy.deepcopy(record)

    async def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        record = self._lookup(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def find_one(self, query: DocumentQuery) -> Optional[Dict[str, Any]]:
        matches = self._select(query)
        return copy.deepcopy(matches[0]) if matches else None

    async def find(
        self, query: Optional[DocumentQuery] = None, options: Optional[FindOptions] = None
    ) -> List[Dict[str, Any]]:
        options = options or FindOptions()
        matches = self._select(query)
        if options.sort_by:
            # sorted() is stable in both directions, so ties keep insertion order.
            matches = sorted(matches, key=_sort_key(options.sort_by), reverse=options.descending)
        end = None if options.limit is None else options.skip + options.limit
        return copy.deepcopy(matches[options.skip:end])

    async def count(self, query: Optional[DocumentQuery] = None) -> int:
        return len(self._select(query))

    async def update(
        self, record_id: str, changes: Dict[str, Any], validate: bool = True
    ) -> Optional[Dict[str, Any]]:
        current = self._lookup(record_id)
        if current is None:
            return None
        merged = {k: v for k, v in current.items() if k not in SYSTEM_FIELDS}
        merged.update(copy.deepcopy(changes))
        document = validate_document(self.schema, merged) if validate else merged
        self._check_unique(document, exclude_id=record_id)
        record = {
            "id": current["id"],
            **document,
            "created_at": current["created_at"],
            "updated_at": utcnow(),
        }
        self._replace(record)
        return copy.deepcopy(record)

    async def delete(self, record_id: str) -> bool:
        return self._remove(record_id)


class VolatileAccountRepository(VolatileRepository):
    id_prefix = "user"
    schema = AccountDocument
    unique_fields = ("username", "email")

    def _records(self):
        return list(self.store.accounts.values())

    def _insert(self, record):
        self.store.accounts[record["id"]] = record

    def _replace(self, record):
        self.store.accounts[record["id"]] = record

    def _remove(self, record_id):
        return self.store.accounts.pop(record_id, None) is not None

    def _lookup(self, record_id):
        return self.store.accounts.get(record_id)

    async def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return await self.find_one(DocumentQuery(filters={"email": email.strip().lower()}))


class VolatileResourceRepository(VolatileRepository):
    id_prefix = "resource"
    schema = ResourceDocument
    text_fields = ("title", "description", "tags")

    def _records(self):
        return self.store.resources

    async def increment_views(self, record_id: str) -> Optional[Dict[str, Any]]:
        record = self._lookup(record_id)
        if record is None:
            return None
        record["views"] = record.get("views", 0) + 1
        record["updated_at"] = utcnow()
        return copy.deepcopy(record)

    async def toggle_like(self, record_id: str, account_id: str) -> Optional[Tuple[Dict[str, Any], bool]]:
        record = self._lookup(record_id)
        if record is None:
            return None
        likes = record.setdefault("likes", [])
        if account_id in likes:
            likes.remove(account_id)
            liked = False
        else:
            likes.append(account_id)
            liked = True
        record["updated_at"] = utcnow()
        return copy.deepcopy(record), liked


class VolatileGenerationRepository(VolatileRepository):
    id_prefix = "generation"
    schema = GenerationDocument

    def _records(self):
        return self.store.generations


class VolatileBackend:
    """The three volatile repositories over one shared store."""

    name = "volatile"

    def __init__(self, store: Optional[VolatileStore] = None):
        self.store = store or VolatileStore()
        self.accounts = VolatileAccountRepository(self.store)
        self.resources = VolatileResourceRepository(self.store)
        self.generations = VolatileGenerationRepository(self.store)

    def is_available(self) -> bool:
        return True
