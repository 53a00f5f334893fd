"""
Tests for the upload routes and static serving of stored files.
"""
from urllib.parse import urlparse

from core.file_utils import media_type_for, unique_filename

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class TestFileHelpers:
    def test_media_type_for(self):
        assert media_type_for("image/png") == "image"
        assert media_type_for("video/mp4") == "video"
        assert media_type_for("audio/mpeg") == "audio"
        assert media_type_for("application/pdf") == "document"
        assert media_type_for("text/markdown") == "text"

    def test_unique_filename_is_sanitized(self):
        first = unique_filename("../../etc/lesson plan.PDF")
        second = unique_filename("../../etc/lesson plan.PDF")

        assert first != second
        assert first.startswith("lesson_plan-")
        assert first.endswith(".pdf")
        assert "/" not in first

    def test_unique_filename_bounds_the_extension(self):
        name = unique_filename("diagram." + "x" * 600)

        assert name.endswith("." + "x" * 10)
        assert len(name) < 100


class TestUploadRoutes:
    def test_single_upload_is_served(self, client, register):
        _, headers = register("alice")

        response = client.post(
            "/api/upload/single",
            files={"file": ("notes.txt", b"Fractions are parts of a whole.", "text/plain")},
            headers=headers,
        )

        assert response.status_code == 201
        stored = response.json()["data"]["file"]
        assert stored["originalName"] == "notes.txt"
        assert stored["type"] == "text"
        assert stored["size"] == len(b"Fractions are parts of a whole.")

        path = urlparse(stored["url"]).path
        assert path.startswith("/uploads/text/")
        served = client.get(path)
        assert served.status_code == 200
        assert served.content == b"Fractions are parts of a whole."

    def test_multiple_upload(self, client, register):
        _, headers = register("alice")

        response = client.post(
            "/api/upload/multiple",
            files=[
                ("files", ("a.txt", b"a", "text/plain")),
                ("files", ("b.png", PNG_BYTES, "image/png")),
            ],
            headers=headers,
        )

        assert response.status_code == 201
        assert [f["type"] for f in response.json()["data"]["files"]] == ["text", "image"]

    def test_unsupported_type_rejected(self, client, register):
        _, headers = register("alice")

        response = client.post(
            "/api/upload/single",
            files={"file": ("run.exe", b"MZ", "application/x-msdownload")},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Unsupported file type: application/x-msdownload"

    def test_avatar_updates_account(self, client, register):
        _, headers = register("alice")

        response = client.post(
            "/api/upload/avatar", files={"avatar": ("me.png", PNG_BYTES, "image/png")}, headers=headers
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["user"]["avatar"] == data["file"]["url"]
        profile = client.get("/api/auth/profile", headers=headers).json()["data"]["user"]
        assert profile["avatar"] == data["file"]["url"]

    def test_avatar_must_be_image(self, client, register):
        _, headers = register("alice")

        response = client.post(
            "/api/upload/avatar", files={"avatar": ("me.txt", b"hello", "text/plain")}, headers=headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Avatar must be an image file"

    def test_upload_requires_auth(self, client):
        response = client.post("/api/upload/single", files={"file": ("a.txt", b"a", "text/plain")})

        assert response.status_code == 401
