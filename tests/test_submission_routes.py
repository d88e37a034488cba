"""Integration tests for the submission intake and review endpoints."""

import io

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings

ADMIN_HEADERS = {"X-Admin-Password": "test-admin-secret"}


def _form(**overrides) -> dict:
    data = {
        "title": "Car parked on the sidewalk",
        "description": "Blocking the ramp for two hours",
        "location": "Main Street 12",
        "spotted_at": "2024-05-30T21:15:00Z",
        "video_url": "https://video.example.test/clip/1",
    }
    data.update(overrides)
    return data


def _photo(name: str = "photo.jpg", content: bytes = b"\xff\xd8\xff fake jpeg", content_type: str = "image/jpeg"):
    return ("images", (name, io.BytesIO(content), content_type))


def _create(client: TestClient, **overrides) -> dict:
    resp = client.post("/api/submissions", data=_form(**overrides), files=[_photo()])
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestCreateSubmission:
    def test_creates_pending_submission_with_uploaded_photos(self, client: TestClient, media) -> None:
        resp = client.post(
            "/api/submissions",
            data=_form(),
            files=[_photo("front.jpg"), _photo("side.png", content_type="image/png")],
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "PENDING"
        assert body["title"] == "Car parked on the sidewalk"
        assert body["images"] == [
            "https://media.example.test/image/1-front.jpg",
            "https://media.example.test/image/2-side.png",
        ]
        assert [u[:2] for u in media.uploads] == [("image", "front.jpg"), ("image", "side.png")]

        fetched = client.get(f"/api/submissions/{body['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["images"] == body["images"]

    def test_blank_description_is_stored_as_null(self, client: TestClient) -> None:
        body = _create(client, description="   ")

        assert body["description"] is None

    def test_missing_photos_rejected(self, client: TestClient, media) -> None:
        resp = client.post("/api/submissions", data=_form())

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "images_required"
        assert media.uploads == []

    def test_empty_photo_parts_are_not_photos(self, client: TestClient) -> None:
        resp = client.post("/api/submissions", data=_form(), files=[_photo(content=b"")])

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "images_required"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"title": ""},
            {"location": "   "},
            {"spotted_at": "yesterday-ish"},
            {"video_url": "not a url"},
        ],
    )
    def test_invalid_fields_rejected(self, client: TestClient, media, overrides: dict) -> None:
        resp = client.post("/api/submissions", data=_form(**overrides), files=[_photo()])

        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "invalid_submission"
        assert error["message"] == "Invalid data"
        assert error["details"]["errors"]
        assert media.uploads == []

    def test_non_image_attachment_rejected(self, client: TestClient) -> None:
        resp = client.post(
            "/api/submissions",
            data=_form(),
            files=[_photo("notes.pdf", b"%PDF-1.4", "application/pdf")],
        )

        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "invalid_image_type"
        assert error["details"]["content_type"] == "application/pdf"

    def test_too_many_photos_rejected(self, client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(settings.app, "max_images", 1)

        resp = client.post("/api/submissions", data=_form(), files=[_photo("a.jpg"), _photo("b.jpg")])

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "too_many_images"

    def test_oversized_photo_rejected(self, client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(settings.app, "max_image_size_mb", 1)
        big = b"x" * (1024 * 1024 + 1)

        resp = client.post("/api/submissions", data=_form(), files=[_photo(content=big)])

        assert resp.status_code == 413
        assert "File too large" in resp.json()["detail"]

    def test_media_failure_stores_nothing(self, client: TestClient, media) -> None:
        media.fail = True

        resp = client.post("/api/submissions", data=_form(), files=[_photo()])

        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "media_upload_failed"
        assert client.get("/api/submissions").json()["pagination"]["total"] == 0


class TestListSubmissions:
    @pytest.fixture
    def seeded(self, client: TestClient) -> list[dict]:
        rows = [
            _create(client, title="Alpha dumping", location="Harbor Road", description="Oil barrels"),
            _create(client, title="Bravo graffiti", location="Main Street 12", description=""),
            _create(client, title="Charlie noise", location="main street 40", description="Loud engine at night"),
        ]
        client.patch(f"/api/submissions/{rows[0]['id']}", json={"status": "APPROVED"}, headers=ADMIN_HEADERS)
        return rows

    def test_defaults(self, client: TestClient, seeded) -> None:
        body = client.get("/api/submissions").json()

        assert body["pagination"] == {"page": 1, "limit": 50, "total": 3, "pages": 1}
        assert body["filters"]["sort_by"] == "created_at"
        assert body["filters"]["sort_order"] == "desc"
        assert body["status_counts"] == {"APPROVED": 1, "PENDING": 2}
        assert len(body["submissions"]) == 3

    def test_status_filter(self, client: TestClient, seeded) -> None:
        body = client.get("/api/submissions", params={"status": "PENDING"}).json()

        assert {s["title"] for s in body["submissions"]} == {"Bravo graffiti", "Charlie noise"}
        assert body["filters"]["status"] == "PENDING"
        # Counters always cover every submission
        assert body["status_counts"]["APPROVED"] == 1

    def test_location_filter_is_case_insensitive(self, client: TestClient, seeded) -> None:
        body = client.get("/api/submissions", params={"location": "MAIN street"}).json()

        assert body["pagination"]["total"] == 2

    def test_search_matches_title_description_and_location(self, client: TestClient, seeded) -> None:
        by_description = client.get("/api/submissions", params={"search": "engine"}).json()
        by_location = client.get("/api/submissions", params={"search": "harbor"}).json()

        assert [s["title"] for s in by_description["submissions"]] == ["Charlie noise"]
        assert [s["title"] for s in by_location["submissions"]] == ["Alpha dumping"]

    def test_sorting_and_paging(self, client: TestClient, seeded) -> None:
        first = client.get(
            "/api/submissions",
            params={"sort_by": "title", "sort_order": "asc", "limit": 2, "page": 1},
        ).json()
        second = client.get(
            "/api/submissions",
            params={"sort_by": "title", "sort_order": "asc", "limit": 2, "page": 2},
        ).json()

        assert [s["title"] for s in first["submissions"]] == ["Alpha dumping", "Bravo graffiti"]
        assert [s["title"] for s in second["submissions"]] == ["Charlie noise"]
        assert first["pagination"]["pages"] == 2

    def test_unknown_sort_falls_back_to_newest_first(self, client: TestClient, seeded) -> None:
        body = client.get("/api/submissions", params={"sort_by": "password", "sort_order": "sideways"}).json()

        created = [s["created_at"] for s in body["submissions"]]
        assert created == sorted(created, reverse=True)

    def test_page_beyond_end_is_empty(self, client: TestClient, seeded) -> None:
        body = client.get("/api/submissions", params={"page": 5}).json()

        assert body["submissions"] == []
        assert body["pagination"]["total"] == 3

    def test_invalid_status_filter_is_422(self, client: TestClient) -> None:
        assert client.get("/api/submissions", params={"status": "ARCHIVED"}).status_code == 422

    def test_wildcard_characters_in_search_match_literally(self, client: TestClient) -> None:
        _create(client, title="Broken light", location="Park Lane")
        _create(client, title="Discount 100% scam", location="Market_Hall")

        underscore = client.get("/api/submissions", params={"search": "_"}).json()
        percent = client.get("/api/submissions", params={"search": "%"}).json()
        by_location = client.get("/api/submissions", params={"location": "t_h"}).json()

        assert [s["title"] for s in underscore["submissions"]] == ["Discount 100% scam"]
        assert [s["title"] for s in percent["submissions"]] == ["Discount 100% scam"]
        assert by_location["pagination"]["total"] == 1


class TestGetSubmission:
    def test_unknown_id_is_404(self, client: TestClient) -> None:
        resp = client.get("/api/submissions/does-not-exist")

        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "submission_not_found"


class TestUpdateStatus:
    def test_requires_admin_password(self, client: TestClient) -> None:
        created = _create(client)

        resp = client.patch(f"/api/submissions/{created['id']}", json={"status": "APPROVED"})

        assert resp.status_code == 403
        assert "Missing admin password" in resp.json()["detail"]

    def test_rejects_wrong_password(self, client: TestClient) -> None:
        created = _create(client)

        resp = client.patch(
            f"/api/submissions/{created['id']}",
            json={"status": "APPROVED"},
            headers={"X-Admin-Password": "guess"},
        )

        assert resp.status_code == 403
        assert client.get(f"/api/submissions/{created['id']}").json()["status"] == "PENDING"

    def test_admin_moves_submission_through_review(self, client: TestClient) -> None:
        created = _create(client)

        resp = client.patch(
            f"/api/submissions/{created['id']}",
            json={"status": "INVESTIGATING"},
            headers=ADMIN_HEADERS,
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "INVESTIGATING"
        assert client.get(f"/api/submissions/{created['id']}").json()["status"] == "INVESTIGATING"

    def test_unknown_status_is_422(self, client: TestClient) -> None:
        created = _create(client)

        resp = client.patch(
            f"/api/submissions/{created['id']}",
            json={"status": "DELETED"},
            headers=ADMIN_HEADERS,
        )

        assert resp.status_code == 422

    def test_unknown_submission_is_404(self, client: TestClient) -> None:
        resp = client.patch("/api/submissions/missing", json={"status": "APPROVED"}, headers=ADMIN_HEADERS)

        assert resp.status_code == 404

    def test_gate_can_be_disabled(self, client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(settings.app, "admin_auth_required", False)
        created = _create(client)

        resp = client.patch(f"/api/submissions/{created['id']}", json={"status": "REJECTED"})

        assert resp.status_code == 200
        assert resp.json()["status"] == "REJECTED"


class TestAdminVerify:
    def test_accepts_configured_password(self, client: TestClient) -> None:
        resp = client.get("/api/admin/verify", headers=ADMIN_HEADERS)

        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_rejects_wrong_password(self, client: TestClient) -> None:
        resp = client.get("/api/admin/verify", headers={"X-Admin-Password": "nope"})

        assert resp.status_code == 403
        assert resp.json()["detail"] == "Invalid admin password"


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok", "database": "ok"}
