"""
Tests for resource CRUD, visibility, publishing, likes and listing.
"""
import pytest

from conftest import resource_payload


class TestCreateAndRead:
    def test_create_sets_ownership_and_counters(self, client, register, create_resource):
        teacher, headers = register("teacher1", role="teacher")

        resource = create_resource(headers)

        assert resource["id"] == "resource_1"
        assert resource["creator"] == teacher["id"]
        assert resource["likes"] == []
        assert resource["views"] == 0
        assert resource["isPublic"] is False
        assert resource["metadata"]["estimatedTime"] == 30
        assert resource["content"]["format"] == "markdown"

    def test_create_requires_auth(self, client):
        response = client.post("/api/resources", json=resource_payload())

        assert response.status_code == 401

    @pytest.mark.parametrize(
        "overrides",
        [
            {"title": ""},
            {"category": "novel"},
            {"tags": [f"tag{i}" for i in range(11)]},
            {"metadata": {"subject": "math", "difficulty": "impossible", "estimatedTime": 10}},
            {"content": {"format": "markdown"}},
            {"generationId": "g" * 33},
        ],
    )
    def test_create_rejects_invalid_payload(self, client, register, overrides):
        _, headers = register("teacher1", role="teacher")

        response = client.post("/api/resources", json=resource_payload(**overrides), headers=headers)

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_owner_reads_without_counting_a_view(self, client, register, create_resource):
        _, headers = register("teacher1", role="teacher")
        resource = create_resource(headers)

        response = client.get(f"/api/resources/{resource['id']}", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["resource"]["views"] == 0

    def test_other_readers_count_views(self, client, register, create_resource):
        _, owner = register("teacher1", role="teacher")
        _, reader = register("student1")
        resource = create_resource(owner, isPublic=True)

        client.get(f"/api/resources/{resource['id']}", headers=reader)
        response = client.get(f"/api/resources/{resource['id']}", headers=reader)

        assert response.json()["data"]["resource"]["views"] == 2

    def test_unknown_resource(self, client, register):
        _, headers = register("student1")

        response = client.get("/api/resources/resource_999", headers=headers)

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Resource not found"}


class TestVisibility:
    def test_private_resource_is_forbidden_to_others(self, client, register, create_resource):
        _, owner = register("teacher1", role="teacher")
        _, other = register("student1")
        resource = create_resource(owner)

        response = client.get(f"/api/resources/{resource['id']}", headers=other)

        assert response.status_code == 403

    def test_listing_shows_own_and_public(self, client, register, create_resource):
        _, alice = register("alice", role="teacher")
        _, bob = register("bob", role="teacher")
        mine = create_resource(alice, title="Alice private")
        create_resource(bob, title="Bob private")
        public = create_resource(bob, title="Bob public", isPublic=True)

        response = client.get("/api/resources", params={"sortOrder": "asc"}, headers=alice)

        data = response.json()["data"]
        assert [r["id"] for r in data["resources"]] == [mine["id"], public["id"]]
        assert data["pagination"] == {"current": 1, "pageSize": 20, "total": 2, "totalPages": 1}

    def test_admin_sees_everything(self, client, register, create_resource):
        _, teacher = register("teacher1", role="teacher")
        _, admin = register("admin1", role="admin")
        private = create_resource(teacher)

        listing = client.get("/api/resources", headers=admin)
        single = client.get(f"/api/resources/{private['id']}", headers=admin)

        assert listing.json()["data"]["pagination"]["total"] == 1
        assert single.status_code == 200


class TestModification:
    def test_owner_updates_partially(self, client, register, create_resource):
        _, headers = register("teacher1", role="teacher")
        resource = create_resource(headers)

        response = client.put(
            f"/api/resources/{resource['id']}", json={"title": "Fractions II", "tags": ["math"]}, headers=headers
        )

        updated = response.json()["data"]["resource"]
        assert response.status_code == 200
        assert updated["title"] == "Fractions II"
        assert updated["tags"] == ["math"]
        assert updated["description"] == resource["description"]
        assert updated["createdAt"] == resource["createdAt"]

    def test_non_owner_cannot_update_or_delete(self, client, register, create_resource):
        _, owner = register("teacher1", role="teacher")
        _, other = register("teacher2", role="teacher")
        resource = create_resource(owner, isPublic=True)

        update = client.put(f"/api/resources/{resource['id']}", json={"title": "Mine now"}, headers=other)
        delete = client.delete(f"/api/resources/{resource['id']}", headers=other)

        assert update.status_code == 403
        assert delete.status_code == 403

    def test_admin_can_delete(self, client, register, create_resource):
        _, owner = register("teacher1", role="teacher")
        _, admin = register("admin1", role="admin")
        resource = create_resource(owner)

        response = client.delete(f"/api/resources/{resource['id']}", headers=admin)

        assert response.status_code == 200
        assert client.get(f"/api/resources/{resource['id']}", headers=owner).status_code == 404

    def test_publish_is_owner_only(self, client, register, create_resource):
        _, owner = register("teacher1", role="teacher")
        _, admin = register("admin1", role="admin")
        resource = create_resource(owner)

        by_admin = client.post(f"/api/resources/{resource['id']}/publish", headers=admin)
        by_owner = client.post(f"/api/resources/{resource['id']}/publish", headers=owner)

        assert by_admin.status_code == 403
        assert by_owner.status_code == 200
        assert by_owner.json()["data"]["resource"]["isPublic"] is True


class TestLikes:
    def test_like_toggles(self, client, register, create_resource):
        _, owner = register("teacher1", role="teacher")
        _, reader = register("student1")
        resource = create_resource(owner, isPublic=True)
        url = f"/api/resources/{resource['id']}/like"

        results = [client.post(url, headers=reader).json()["data"] for _ in range(3)]

        assert results == [
            {"liked": True, "likesCount": 1},
            {"liked": False, "likesCount": 0},
            {"liked": True, "likesCount": 1},
        ]

    def test_cannot_like_invisible_resource(self, client, register, create_resource):
        _, owner = register("teacher1", role="teacher")
        _, reader = register("student1")
        resource = create_resource(owner)

        response = client.post(f"/api/resources/{resource['id']}/like", headers=reader)

        assert response.status_code == 403


class TestListing:
    def test_filters_and_search(self, client, register, create_resource):
        _, headers = register("teacher1", role="teacher")
        create_resource(headers, title="Fractions", category="worksheet")
        create_resource(headers, title="Cell biology", category="lesson_plan", tags=["biology"])
        create_resource(headers, title="Quiz on cells", category="quiz", contentType="interactive")

        by_category = client.get("/api/resources", params={"category": "lesson_plan"}, headers=headers)
        by_type = client.get("/api/resources", params={"contentType": "interactive"}, headers=headers)
        by_search = client.get("/api/resources", params={"search": "cell"}, headers=headers)

        assert [r["title"] for r in by_category.json()["data"]["resources"]] == ["Cell biology"]
        assert [r["title"] for r in by_type.json()["data"]["resources"]] == ["Quiz on cells"]
        assert by_search.json()["data"]["pagination"]["total"] == 2

    def test_pages_cover_every_resource_once(self, client, register, create_resource):
        _, headers = register("teacher1", role="teacher")
        created = [create_resource(headers, title=f"Resource {i}")["id"] for i in range(7)]

        seen = []
        for page in (1, 2, 3):
            response = client.get(
                "/api/resources",
                params={"page": page, "limit": 3, "sortBy": "views", "sortOrder": "desc"},
                headers=headers,
            )
            data = response.json()["data"]
            assert data["pagination"]["totalPages"] == 3
            seen.extend(r["id"] for r in data["resources"])

        assert seen == created

    def test_sort_by_likes(self, client, register, create_resource):
        _, owner = register("teacher1", role="teacher")
        _, fan1 = register("student1")
        _, fan2 = register("student2")
        quiet = create_resource(owner, title="Quiet", isPublic=True)
        popular = create_resource(owner, title="Popular", isPublic=True)
        client.post(f"/api/resources/{popular['id']}/like", headers=fan1)
        client.post(f"/api/resources/{popular['id']}/like", headers=fan2)

        response = client.get("/api/resources", params={"sortBy": "likes"}, headers=fan1)

        assert [r["id"] for r in response.json()["data"]["resources"]] == [popular["id"], quiet["id"]]

    def test_invalid_query_parameters(self, client, register):
        _, headers = register("teacher1", role="teacher")

        response = client.get("/api/resources", params={"limit": 500, "sortBy": "random"}, headers=headers)

        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["errors"]}
        assert {"limit", "sortBy"} <= fields
