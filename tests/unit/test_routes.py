"""
API tests through FastAPI's TestClient.

The app runs against the in-memory store and a frozen clock (see
conftest.py), so keys in responses are predictable.
"""

import asyncio

from bucketfs.infrastructure.storage.client import StorageError

from .test_dimensions import png_header


def upload(client, name="notes.txt", data=b"hello", content_type="text/plain", path=""):
    return client.post(
        "/api/files/upload",
        files={"file": (name, data, content_type)},
        data={"path": path},
    )


# ---------------------------------------------------------------------------
# Auth and health
# ---------------------------------------------------------------------------

class TestAuth:

    def test_missing_api_key_is_forbidden(self, client):
        response = client.get("/api/files", headers={"X-API-Key": ""})
        assert response.status_code == 403

    def test_wrong_api_key_is_forbidden(self, client):
        response = client.get("/api/files", headers={"X-API-Key": "nope"})
        assert response.status_code == 403


class TestHealth:

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["details"]["mock_mode"]["r2"] is True

    def test_readiness_in_mock_mode(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

class TestUploadRoute:

    def test_upload_and_list(self, client, frozen_millis):
        response = upload(client, path="docs")

        assert response.status_code == 200
        body = response.json()
        key = f"docs/{frozen_millis}-notes.txt"
        assert body["id"] == key
        assert body["name"] == "notes.txt"
        assert body["size"] == 5
        assert body["url"] == f"/api/files/{key}"
        assert body["path"] == "docs"
        assert "width" not in body

        listing = client.get("/api/files", params={"path": "docs"}).json()
        assert [f["name"] for f in listing["files"]] == ["notes.txt"]
        assert listing["files"][0]["type"] == "text/plain"
        assert listing["pagination"]["totalRecords"] == 1

    def test_image_upload_reports_dimensions(self, client):
        response = upload(client, name="pic.png", data=png_header(100, 50), content_type="image/png")

        body = response.json()
        assert (body["width"], body["height"]) == (100, 50)

    def test_empty_file(self, client, store):
        response = upload(client, data=b"")

        assert response.status_code == 400
        assert response.json()["error"] == "empty_file"
        assert store.keys() == []

    def test_too_large(self, client, settings):
        response = upload(client, data=b"x" * (settings.max_upload_size_bytes + 1))

        assert response.status_code == 413
        assert response.json()["error"] == "file_too_large"

    def test_no_file_part(self, client):
        response = client.post("/api/files/upload", data={"path": ""})

        assert response.status_code == 400
        assert response.json()["error"] == "missing_file"

    def test_legacy_field_ignored_by_default(self, client):
        response = client.post(
            "/api/files/upload",
            files={"upload": ("a.txt", b"x", "text/plain")},
        )
        assert response.status_code == 400

    def test_legacy_field_accepted_when_enabled(self, client, settings):
        settings.legacy_upload_field_scan = True

        response = client.post(
            "/api/files/upload",
            files={"image": ("a.txt", b"x", "text/plain")},
        )

        assert response.status_code == 200
        assert response.json()["name"] == "a.txt"

    def test_store_failure_is_500_with_cause(self, client, store, monkeypatch):
        async def failing_put(*args, **kwargs):
            raise StorageError("Upload failed: SlowDown: reduce your request rate")

        monkeypatch.setattr(store, "put", failing_put)

        response = upload(client)

        assert response.status_code == 500
        assert response.json() == {
            "error": "storage_error",
            "detail": "Upload failed: SlowDown: reduce your request rate",
        }


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

class TestListRoute:

    def test_folders_first_with_pagination(self, client, clock):
        for name in ("a", "b", "c"):
            client.post("/api/files/create-folder", json={"name": name, "path": "/"})
            clock.advance(milliseconds=1)
        for name in ("1.txt", "2.txt", "3.txt", "4.txt", "5.txt"):
            upload(client, name=name)
            clock.advance(milliseconds=1)

        first = client.get("/api/files", params={"limit": 5}).json()
        second = client.get("/api/files", params={"limit": 5, "page": 2}).json()

        assert [f["name"] for f in first["folders"]] == ["a", "b", "c"]
        assert len(first["files"]) == 2
        assert first["folders"][0]["type"] == "folder"
        assert first["pagination"] == {
            "currentPage": 1,
            "totalPages": 2,
            "totalRecords": 8,
            "hasNextPage": True,
            "hasPreviousPage": False,
            "limit": 5,
        }
        assert second["folders"] == []
        assert len(second["files"]) == 3

    def test_unknown_type_is_rejected(self, client):
        response = client.get("/api/files", params={"type": "video"})
        assert response.status_code == 422

    def test_type_filter(self, client, clock):
        upload(client, name="a.png", data=png_header(1, 1), content_type="image/png")
        clock.advance(milliseconds=1)
        upload(client, name="b.txt")

        body = client.get("/api/files", params={"type": "image"}).json()

        assert [f["name"] for f in body["files"]] == ["a.png"]


# ---------------------------------------------------------------------------
# Folders and rename
# ---------------------------------------------------------------------------

class TestFolderRoutes:

    def test_create_folder(self, client, frozen_millis):
        response = client.post("/api/files/create-folder", json={"name": "Docs", "path": "a/b"})

        assert response.status_code == 201
        assert response.json()["key"] == f"a/b/{frozen_millis}-Docs/.folder"
        assert response.json()["path"] == "a/b"

    def test_create_folder_invalid_name(self, client):
        response = client.post("/api/files/create-folder", json={"name": "x/y", "path": ""})

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_name"

    def test_rename_folder(self, client, store, frozen_millis):
        key = client.post("/api/files/create-folder", json={"name": "Old"}).json()["key"]

        response = client.post(
            "/api/files/rename",
            json={"fileId": key, "newName": "New", "isFolder": True},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["newPath"] == f"{frozen_millis}-New/.folder"
        assert "url" not in body
        assert store.keys() == [body["newPath"]]

    def test_delete_folder_marker(self, client, store):
        key = client.post("/api/files/create-folder", json={"name": "Docs"}).json()["key"]

        response = client.delete(f"/api/files/{key}")

        assert response.status_code == 200
        assert response.json()["message"] == "Folder deleted successfully"
        assert store.keys() == []

    def test_open_nested_folder_by_original_name(self, client, frozen_millis):
        client.post("/api/files/create-folder", json={"name": "docs"})
        docs = client.get("/api/files").json()["folders"][0]
        assert docs["originalName"] == f"{frozen_millis}-docs"

        client.post("/api/files/create-folder", json={"name": "inner", "path": docs["originalName"]})
        inner = client.get("/api/files", params={"path": docs["originalName"]}).json()["folders"][0]
        assert inner["originalName"] == f"{frozen_millis}-docs/{frozen_millis}-inner"
        assert inner["path"] == f"{frozen_millis}-docs"

        upload(client, name="deep.txt", path=inner["originalName"])
        listing = client.get("/api/files", params={"path": inner["originalName"]}).json()

        assert [f["name"] for f in listing["files"]] == ["deep.txt"]
        assert listing["pagination"]["totalRecords"] == 1


class TestRenameFileRoute:

    def test_rename_file(self, client, frozen_millis):
        old_key = upload(client, name="old.txt").json()["id"]

        response = client.post("/api/files/rename", json={"fileId": old_key, "newName": "new.txt"})

        assert response.status_code == 200
        body = response.json()
        assert body["oldPath"] == f"{frozen_millis}-old.txt"
        assert body["newPath"] == f"{frozen_millis}-new.txt"
        assert body["url"] == f"/api/files/{frozen_millis}-new.txt"

        assert client.get(f"/api/files/{old_key}").status_code == 404
        assert client.get(f"/api/files/{body['newPath']}").content == b"hello"

    def test_rename_missing_file(self, client):
        response = client.post("/api/files/rename", json={"fileId": "1-nope.txt", "newName": "x.txt"})

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_rename_to_bad_name(self, client):
        old_key = upload(client).json()["id"]

        response = client.post("/api/files/rename", json={"fileId": old_key, "newName": "../x"})

        assert response.status_code == 400


# ---------------------------------------------------------------------------
# Retrieval and deletion
# ---------------------------------------------------------------------------

class TestRetrievalRoutes:

    def test_inline_get(self, client):
        key = upload(client, name="report 1.txt").json()["id"]

        response = client.get(f"/api/files/{key}")

        assert response.status_code == 200
        assert response.content == b"hello"
        assert response.headers["content-type"].startswith("text/plain")
        assert response.headers["cache-control"] == "public, max-age=3600"
        assert response.headers["etag"].startswith('"')
        assert response.headers["content-disposition"] == 'inline; filename="report%201.txt"'

    def test_download_is_attachment(self, client):
        key = upload(client).json()["id"]

        response = client.get(f"/api/files/download/{key}")

        assert response.status_code == 200
        assert response.headers["content-disposition"] == 'attachment; filename="notes.txt"'
        assert "cache-control" not in response.headers

    def test_download_falls_back_to_key_name(self, client, store):
        asyncio.run(store.put("1000-raw.bin", b"\x00"))

        response = client.get("/api/files/download/1000-raw.bin")

        assert response.headers["content-disposition"] == 'attachment; filename="raw.bin"'

    def test_get_missing(self, client):
        response = client.get("/api/files/1-missing.txt")

        assert response.status_code == 404
        assert response.json() == {"error": "not_found", "detail": "File not found: 1-missing.txt"}

    def test_delete_file(self, client, store):
        key = upload(client).json()["id"]

        response = client.delete(f"/api/files/{key}")

        assert response.status_code == 200
        assert response.json()["fileName"] == key
        assert store.keys() == []

    def test_delete_missing(self, client):
        assert client.delete("/api/files/1-missing.txt").status_code == 404

    def test_delete_store_failure_is_500(self, client, store, monkeypatch):
        key = upload(client).json()["id"]

        async def failing_delete(key):
            raise StorageError("Delete failed: InternalError")

        monkeypatch.setattr(store, "delete", failing_delete)

        response = client.delete(f"/api/files/{key}")

        assert response.status_code == 500
        assert response.json()["detail"] == "Delete failed: InternalError"


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

class TestImageRoutes:

    def test_upload_list_get_delete(self, client, store, frozen_millis):
        response = client.post(
            "/api/images/upload",
            files={"file": ("pic.png", png_header(64, 32), "image/png")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["fileName"] == f"{frozen_millis}-pic.png"
        assert body["url"] == f"/api/images/{frozen_millis}-pic.png"
        assert (body["width"], body["height"]) == (64, 32)

        listing = client.get("/api/images").json()
        assert [i["name"] for i in listing["images"]] == ["pic.png"]
        assert listing["images"][0]["width"] == 64
        assert listing["pagination"]["limit"] == 12

        assert client.get(body["url"]).status_code == 200
        assert client.delete(body["url"]).status_code == 200
        assert store.keys() == []

    def test_non_image_rejected(self, client, store):
        response = client.post(
            "/api/images/upload",
            files={"file": ("doc.pdf", b"%PDF-1.4", "application/pdf")},
        )

        assert response.status_code == 415
        assert response.json()["error"] == "unsupported_media_type"
        assert store.keys() == []

    def test_gallery_spans_folders(self, client, clock):
        upload(client, name="a.png", data=png_header(1, 1), content_type="image/png", path="x/y")
        clock.advance(seconds=1)
        upload(client, name="b.jpg", data=b"\xff\xd8", content_type="image/jpeg")

        names = [i["name"] for i in client.get("/api/images").json()["images"]]

        assert names == ["b.jpg", "a.png"]

    def test_upload_without_file_part(self, client):
        response = client.post("/api/images/upload", data={"path": ""})

        assert response.status_code == 400
        assert response.json() == {
            "error": "missing_file",
            "detail": "No image provided. Send it in the 'file' field.",
        }
