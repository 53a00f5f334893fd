"""
End-to-end tests with the persistent backend connected, covering the same
scenarios as the in-memory runs and the switch between the two.
"""
import storage.selector as selector
from conftest import DEFAULT_PASSWORD, UnreachableBackend


class TestPersistentBackend:
    def test_full_resource_flow(self, client, register, create_resource, persistent_mode):
        teacher, owner = register("teacher1", role="teacher")
        student, reader = register("student1")

        resource = create_resource(owner, isPublic=True, tags=["math", "fractions"])
        client.get(f"/api/resources/{resource['id']}", headers=reader)
        liked = client.post(f"/api/resources/{resource['id']}/like", headers=reader).json()["data"]
        listing = client.get("/api/resources", params={"search": "fractions"}, headers=reader).json()["data"]

        assert len(teacher["id"]) == 32
        assert resource["creator"] == teacher["id"]
        assert liked == {"liked": True, "likesCount": 1}
        assert listing["pagination"]["total"] == 1
        stored = listing["resources"][0]
        assert stored["views"] == 1
        assert stored["likes"] == [student["id"]]
        # Nothing was written to the in-memory store.
        assert selector.volatile_store.accounts == {}
        assert selector.volatile_store.resources == []

    def test_generation_history(self, client, register, persistent_mode):
        _, headers = register("alice")

        generated = client.post("/api/ai/generate", json={"type": "text", "prompt": "Explain atoms"}, headers=headers)
        history = client.get("/api/ai/history", headers=headers).json()["data"]

        assert generated.status_code == 200
        assert history["results"][0]["id"] == generated.json()["data"]["id"]
        assert history["results"][0]["provider"] == "mock"

    def test_duplicate_registration(self, client, register, persistent_mode):
        register("alice")

        response = client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "other@example.com", "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == 400
        assert response.json()["errors"] == [{"field": "username", "message": "already exists"}]


class TestBackendSwitch:
    def test_outage_serves_from_memory_without_sync(self, client, register, persistent_mode):
        register("alice")

        persistent_mode.database.mark_disconnected("network down")
        login = client.post("/api/auth/login", json={"email": "alice@example.com", "password": DEFAULT_PASSWORD})
        registered_again = client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": DEFAULT_PASSWORD},
        )

        # Records written to the database are not visible from the in-memory store.
        assert login.status_code == 401
        assert registered_again.status_code == 201
        assert registered_again.json()["data"]["user"]["id"] == "user_1"

    def test_mid_request_failure_falls_back(self, client, monkeypatch):
        unreachable = UnreachableBackend()
        monkeypatch.setattr(selector, "persistent_backend", unreachable)

        response = client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == 201
        assert response.json()["data"]["user"]["id"] == "user_1"
        assert unreachable.attempts == ["create"]
        assert "user_1" in selector.volatile_store.accounts
