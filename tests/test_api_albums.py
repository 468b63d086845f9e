"""
tests/test_api_albums.py -- Integration tests for the /albums routes.

These tests exercise the full stack: routing -> authorization pipeline
(token, principal, ownership) -> duplicate rule -> AlbumStore -> envelope.

Coverage:
  - pipeline ordering: 401 without token, 401 for a deleted principal,
    404 for a missing album, 403 for another user's album
  - create (JSON and multipart with cover art), list, fetch, update, delete
  - duplicate detection on create and update
  - owner can never be changed
  - uploaded image cleaned up when the record write fails
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from conftest import Harness
from sqlalchemy.exc import OperationalError

THRILLER = {"title": "Thriller", "artists": ["Michael Jackson"]}


def _create(api: Harness, headers: dict, **fields) -> dict:
    resp = api.client.post("/albums", json={**THRILLER, **fields}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


class TestPipelineOrdering:
    def test_no_token(self, api: Harness) -> None:
        resp = api.client.get("/albums")
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "message": "No token provided"}

    def test_garbage_token(self, api: Harness) -> None:
        resp = api.client.get("/albums", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid or expired token"

    def test_deleted_principal(self, api: Harness) -> None:
        user_id, headers = api.signup()
        api.user_store.delete_user(user_id)
        resp = api.client.get("/albums", headers=headers)
        assert resp.status_code == 401
        assert resp.json()["message"] == "Unauthorized: No user found in request"

    def test_missing_album(self, api: Harness) -> None:
        _uid, headers = api.signup()
        resp = api.client.get("/albums/does-not-exist", headers=headers)
        assert resp.status_code == 404
        assert resp.json()["message"] == "Album not found"

    def test_missing_album_still_requires_token(self, api: Harness) -> None:
        assert api.client.get("/albums/does-not-exist").status_code == 401

    def test_token_checked_before_body(self, api: Harness) -> None:
        resp = api.client.post("/albums", content=b"{not json", headers={"Content-Type": "application/json"})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "message": "No token provided"}

    def test_anonymous_upload_rejected_before_image_host(self, api: Harness) -> None:
        resp = api.client.post(
            "/albums",
            data=THRILLER,
            files={"coverArt": ("cover.jpg", b"\xff\xd8\xff", "image/jpeg")},
        )
        assert resp.status_code == 401
        api.upload.assert_not_called()

    def test_ownership_checked_before_body(self, api: Harness) -> None:
        _a, headers_a = api.signup()
        _b, headers_b = api.signup()
        album = api.client.post("/albums", json=THRILLER, headers=headers_a).json()["data"]
        resp = api.client.put(
            f"/albums/{album['id']}",
            content=b"[1]",
            headers={**headers_b, "Content-Type": "application/json"},
        )
        assert resp.status_code == 403
        assert resp.json() == {"success": False, "message": "Not authorized"}

    def test_missing_album_checked_before_body(self, api: Harness) -> None:
        _uid, headers = api.signup()
        resp = api.client.put(
            "/albums/does-not-exist",
            content=b"{not json",
            headers={**headers, "Content-Type": "application/json"},
        )
        assert resp.status_code == 404


class TestCreateAndRead:
    def test_register_login_create(self, api: Harness) -> None:
        user_id, headers = api.signup()
        resp = api.client.post("/albums", json=THRILLER, headers=headers)
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Album created successfully"
        assert body["data"]["owner_id"] == user_id
        assert body["data"]["title"] == "Thriller"
        assert "title_normalized" not in body["data"]

    def test_owner_in_body_is_ignored_on_create(self, api: Harness) -> None:
        user_id, headers = api.signup()
        album = _create(api, headers, owner_id="someone-else", ownerId="someone-else")
        assert album["owner_id"] == user_id

    def test_full_payload_camel_case(self, api: Harness) -> None:
        _uid, headers = api.signup()
        album = _create(
            api,
            headers,
            format="LP",
            releaseDate="1982-11-30",
            genres=["Pop"],
            personalNote={"content": "still the best pop record"},
            dimensions={"emotional": ["energetic"], "sonic": ["polished"]},
            connections=[{"album": "abc123", "type": "influences"}],
            listeningContext={"frequency": "regular"},
        )
        assert album["format"] == "LP"
        assert album["release_date"] == "1982-11-30"
        assert album["personal_note"]["word_count"] == 5
        assert album["personal_note"]["last_edited"]
        assert album["dimensions"] == {"emotional": ["energetic"], "sonic": ["polished"]}
        assert album["connections"][0]["type"] == "influences"
        assert album["listening_context"]["frequency"] == "regular"

    @pytest.mark.parametrize(
        "payload",
        [
            {"title": "No artists"},
            {"title": "Empty artists", "artists": []},
            {"artists": ["No title"]},
            {**THRILLER, "format": "8-track"},
            {**THRILLER, "dimensions": {"emotional": ["bored"]}},
            {**THRILLER, "releaseDate": "not-a-date"},
        ],
    )
    def test_invalid_payload(self, api: Harness, payload: dict) -> None:
        _uid, headers = api.signup()
        resp = api.client.post("/albums", json=payload, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_multipart_with_cover_art(self, api: Harness) -> None:
        _uid, headers = api.signup()
        resp = api.client.post(
            "/albums",
            data={"title": "Watch the Throne", "artists": ["Jay-Z", "Kanye West"], "genres": "Hip hop"},
            files={"coverArt": ("cover.jpg", b"\xff\xd8\xff", "image/jpeg")},
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        album = resp.json()["data"]
        assert album["artists"] == ["Jay-Z", "Kanye West"]
        assert album["genres"] == ["Hip hop"]
        assert album["cover_art_url"].startswith("https://res.cloudinary.com/")
        assert "cover_art_id" not in album

    def test_multipart_json_decoding_limited_to_structured_fields(self, api: Harness) -> None:
        _uid, headers = api.signup()
        resp = api.client.post(
            "/albums",
            data={
                "title": "[1]",
                "artists": '["Jay-Z", "Kanye West"]',
                "personalNote": '{"content": "loud and proud"}',
                "format": "{}",
            },
            headers=headers,
        )
        assert resp.status_code == 400
        assert "format" in resp.json()["message"]

        resp = api.client.post(
            "/albums",
            data={"title": "[1]", "artists": '["Jay-Z", "Kanye West"]', "personalNote": '{"content": "loud and proud"}'},
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        album = resp.json()["data"]
        assert album["title"] == "[1]"
        assert album["artists"] == ["Jay-Z", "Kanye West"]
        assert album["personal_note"]["word_count"] == 3

    def test_list_empty_then_newest_first(self, api: Harness) -> None:
        _uid, headers = api.signup()
        resp = api.client.get("/albums", headers=headers)
        assert resp.json() == {"success": True, "message": "You haven't added any albums yet", "data": []}

        first = _create(api, headers, title="First")
        second = _create(api, headers, title="Second")
        resp = api.client.get("/albums", headers=headers)
        assert resp.json()["message"] == "Albums fetched successfully"
        assert [a["id"] for a in resp.json()["data"]] == [second["id"], first["id"]]

    def test_list_only_shows_own_albums(self, api: Harness) -> None:
        _a, headers_a = api.signup()
        _b, headers_b = api.signup()
        _create(api, headers_a)
        assert api.client.get("/albums", headers=headers_b).json()["data"] == []

    def test_fetch_own_album(self, api: Harness) -> None:
        _uid, headers = api.signup()
        album = _create(api, headers)
        resp = api.client.get(f"/albums/{album['id']}", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Album fetched successfully"
        assert resp.json()["data"]["id"] == album["id"]


class TestOwnership:
    def test_other_user_cannot_read_update_or_delete(self, api: Harness) -> None:
        _a, headers_a = api.signup()
        _b, headers_b = api.signup()
        album = _create(api, headers_a)
        url = f"/albums/{album['id']}"

        for resp in (
            api.client.get(url, headers=headers_b),
            api.client.put(url, json={"title": "Mine now"}, headers=headers_b),
            api.client.delete(url, headers=headers_b),
        ):
            assert resp.status_code == 403
            assert resp.json() == {"success": False, "message": "Not authorized"}
        assert api.album_store.get_album(album["id"]).title == "Thriller"

    def test_admin_cannot_use_owner_routes(self, api: Harness) -> None:
        _a, headers_a = api.signup()
        album = _create(api, headers_a)
        resp = api.client.get(f"/albums/{album['id']}", headers=api.admin_headers)
        assert resp.status_code == 403

    @pytest.mark.parametrize("key", ["owner_id", "ownerId", "owner", "addedBy"])
    def test_owner_cannot_be_changed(self, api: Harness, key: str) -> None:
        user_id, headers = api.signup()
        album = _create(api, headers)
        resp = api.client.put(f"/albums/{album['id']}", json={key: "someone-else"}, headers=headers)
        assert resp.status_code == 403
        assert resp.json()["message"] == "You are not allowed to change the album owner"
        assert api.album_store.get_album(album["id"]).owner_id == user_id


class TestDuplicates:
    def test_duplicate_create(self, api: Harness) -> None:
        _uid, headers = api.signup()
        _create(api, headers)
        resp = api.client.post(
            "/albums", json={"title": "  THRILLER ", "artists": ["Michael   Jackson"]}, headers=headers
        )
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": "This album already exists in your collection"}
        assert len(api.album_store.list_albums_by_owner(_uid)) == 1

    def test_duplicate_check_happens_before_upload(self, api: Harness) -> None:
        _uid, headers = api.signup()
        _create(api, headers)
        resp = api.client.post(
            "/albums",
            data={"title": "thriller", "artists": "michael jackson"},
            files={"coverArt": ("cover.jpg", b"\xff\xd8\xff", "image/jpeg")},
            headers=headers,
        )
        assert resp.status_code == 400
        api.upload.assert_not_called()

    def test_same_album_for_different_users(self, api: Harness) -> None:
        _a, headers_a = api.signup()
        _b, headers_b = api.signup()
        _create(api, headers_a)
        _create(api, headers_b)

    def test_different_artist_count_is_not_duplicate(self, api: Harness) -> None:
        _uid, headers = api.signup()
        _create(api, headers)
        _create(api, headers, artists=["Michael Jackson", "Quincy Jones"])

    def test_update_into_duplicate(self, api: Harness) -> None:
        _uid, headers = api.signup()
        _create(api, headers)
        other = _create(api, headers, title="Bad")
        resp = api.client.put(f"/albums/{other['id']}", json={"title": "thriller"}, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "This album already exists in your collection"

    def test_update_keeping_own_identity_is_allowed(self, api: Harness) -> None:
        _uid, headers = api.signup()
        album = _create(api, headers)
        resp = api.client.put(f"/albums/{album['id']}", json={"title": "THRILLER"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["title"] == "THRILLER"


class TestUpdateAndDelete:
    def test_partial_update(self, api: Harness) -> None:
        _uid, headers = api.signup()
        album = _create(api, headers, genres=["Pop"], tags=["classic"])
        resp = api.client.put(
            f"/albums/{album['id']}",
            json={"tags": ["eighties"], "personalNote": {"content": "one two three"}},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "Album updated successfully"
        data = resp.json()["data"]
        assert data["tags"] == ["eighties"]
        assert data["genres"] == ["Pop"]
        assert data["title"] == "Thriller"
        assert data["personal_note"]["word_count"] == 3

    def test_new_cover_replaces_old(self, api: Harness) -> None:
        _uid, headers = api.signup()
        created = api.client.post(
            "/albums",
            data=THRILLER,
            files={"coverArt": ("a.jpg", b"\xff\xd8\xff", "image/jpeg")},
            headers=headers,
        ).json()["data"]
        old_id = api.album_store.get_album(created["id"]).cover_art_id

        resp = api.client.put(
            f"/albums/{created['id']}",
            files={"coverArt": ("b.png", b"\x89PNG", "image/png")},
            headers=headers,
        )
        assert resp.status_code == 200, resp.text
        new_id = api.album_store.get_album(created["id"]).cover_art_id
        assert new_id != old_id
        api.destroy.assert_called_once()
        assert api.destroy.call_args.args == (old_id,)

    def test_delete(self, api: Harness) -> None:
        _uid, headers = api.signup()
        album = _create(api, headers)
        resp = api.client.delete(f"/albums/{album['id']}", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["message"] == "Album deleted successfully"
        assert resp.json()["data"]["id"] == album["id"]
        assert api.album_store.get_album(album["id"]) is None
        assert api.client.get(f"/albums/{album['id']}", headers=headers).status_code == 404

    def test_delete_survives_image_cleanup_failure(self, api: Harness) -> None:
        _uid, headers = api.signup()
        created = api.client.post(
            "/albums",
            data=THRILLER,
            files={"coverArt": ("a.jpg", b"\xff\xd8\xff", "image/jpeg")},
            headers=headers,
        ).json()["data"]
        api.destroy.side_effect = RuntimeError("cloudinary unreachable")
        resp = api.client.delete(f"/albums/{created['id']}", headers=headers)
        assert resp.status_code == 200
        assert api.album_store.get_album(created["id"]) is None


class TestUploadCleanup:
    def test_failed_write_discards_uploaded_cover(self, api: Harness) -> None:
        _uid, headers = api.signup()
        with patch.object(api.album_store, "create_album", side_effect=OperationalError("INSERT", {}, Exception())):
            with pytest.raises(OperationalError):
                api.client.post(
                    "/albums",
                    data=THRILLER,
                    files={"coverArt": ("a.jpg", b"\xff\xd8\xff", "image/jpeg")},
                    headers=headers,
                )
        api.upload.assert_called_once()
        api.destroy.assert_called_once()
        assert api.destroy.call_args.args[0].startswith("craterra-test/")
