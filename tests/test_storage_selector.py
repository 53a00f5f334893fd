"""
Tests for backend selection and the per-request fallback to in-memory storage.
"""
import pytest

import storage.selector as selector
from conftest import UnreachableBackend, account_document
from storage.errors import DuplicateKeyError
from storage.selector import StorageSession, is_persistent_available, storage_mode
from storage.volatile import VolatileBackend, VolatileStore


class BrokenProbeBackend(UnreachableBackend):
    def is_available(self):
        raise RuntimeError("probe exploded")


class TestStorageSession:
    def test_uses_volatile_when_persistent_disconnected(self):
        session = StorageSession(UnreachableBackend(available=False), VolatileBackend(VolatileStore()))

        assert session.mode == "volatile"

    def test_uses_persistent_when_connected(self):
        session = StorageSession(UnreachableBackend(), VolatileBackend(VolatileStore()))

        assert session.mode == "persistent"

    async def test_connectivity_error_replays_on_volatile(self):
        persistent = UnreachableBackend()
        volatile = VolatileBackend(VolatileStore())
        session = StorageSession(persistent, volatile)

        account = await session.accounts.create(account_document("alice"))

        assert account["id"] == "user_1"
        assert persistent.attempts == ["create"]
        assert await volatile.accounts.count() == 1

    async def test_downgrade_is_sticky_for_the_request(self):
        persistent = UnreachableBackend()
        session = StorageSession(persistent, VolatileBackend(VolatileStore()))

        created = await session.accounts.create(account_document("alice"))
        fetched = await session.accounts.get(created["id"])

        assert fetched["username"] == "alice"
        assert session.mode == "volatile"
        # The second operation never went back to the persistent backend.
        assert persistent.attempts == ["create"]

    async def test_new_session_consults_selector_again(self):
        persistent = UnreachableBackend()
        volatile = VolatileBackend(VolatileStore())
        first = StorageSession(persistent, volatile)
        await first.accounts.count()

        second = StorageSession(persistent, volatile)

        assert first.mode == "volatile"
        assert second.mode == "persistent"

    async def test_volatile_errors_propagate(self):
        volatile = VolatileBackend(VolatileStore())
        session = StorageSession(UnreachableBackend(available=False), volatile)
        await session.accounts.create(account_document("alice"))

        with pytest.raises(DuplicateKeyError):
            await session.accounts.create(account_document("alice"))

    def test_failing_probe_counts_as_unavailable(self):
        session = StorageSession(BrokenProbeBackend(), VolatileBackend(VolatileStore()))

        assert session.mode == "volatile"


class TestAvailability:
    def test_reports_volatile_without_database(self):
        assert is_persistent_available() is False
        assert storage_mode() == "volatile"

    def test_never_raises(self, monkeypatch):
        monkeypatch.setattr(selector, "persistent_backend", BrokenProbeBackend())

        assert is_persistent_available() is False

    def test_reports_persistent_when_connected(self, persistent_mode):
        assert is_persistent_available() is True
        assert storage_mode() == "persistent"

        persistent_mode.database.mark_disconnected("network down")

        assert storage_mode() == "volatile"
