"""Route-level tests through the full middleware stack.

Exercise transport concerns (status codes, envelopes, body parsing,
tri-state bodies) and the main user flows end to end.
"""

from uuid import uuid4

import pytest
import respx
from fastapi.testclient import TestClient

from tests.helpers import (
    auth_headers,
    internal_headers,
    movie_detail_payload,
    providers_payload,
    tv_detail_payload,
)

TMDB_HOST = "api.themoviedb.org"

OWNER = "owner_subject"


def data(response):
    return response.json()["data"]


def error_code(response) -> str:
    return response.json()["error"]["code"]


def mock_catalog_entry(catalog_id: int, kind: str, detail: dict) -> None:
    respx.get(host=TMDB_HOST, path=f"/3/{kind}/{catalog_id}").respond(200, json=detail)
    respx.get(host=TMDB_HOST, path=f"/3/{kind}/{catalog_id}/watch/providers").respond(
        200, json=providers_payload()
    )


@pytest.fixture
def headers():
    return auth_headers(OWNER)


@pytest.fixture
def list_id(client: TestClient, headers):
    response = client.post("/lists", json={"name": "Horror"}, headers=headers)
    assert response.status_code == 201
    return data(response)["id"]


@pytest.fixture
def movie_id(client: TestClient, headers):
    with respx.mock:
        mock_catalog_entry(27205, "movie", movie_detail_payload())
        response = client.post("/media", json={"catalog_id": 27205, "kind": "movie"}, headers=headers)
    assert response.status_code == 200
    return data(response)["id"]


@pytest.fixture
def show_id(client: TestClient, headers):
    with respx.mock:
        mock_catalog_entry(1399, "tv", tv_detail_payload())
        response = client.post("/media", json={"catalog_id": 1399, "kind": "tv"}, headers=headers)
    assert response.status_code == 200
    return data(response)["id"]


class TestListRoutes:
    def test_create_and_fetch(self, client: TestClient, headers, list_id):
        response = client.get(f"/lists/{list_id}", headers=headers)

        assert response.status_code == 200
        assert data(response)["name"] == "Horror"
        assert data(response)["role"] == "creator"

    def test_index_lists_visible_lists(self, client: TestClient, headers, list_id):
        response = client.get("/lists", headers=headers)

        assert [lst["id"] for lst in data(response)] == [list_id]

    def test_blank_name(self, client: TestClient, headers):
        response = client.post("/lists", json={"name": "  "}, headers=headers)

        assert response.status_code == 400
        assert error_code(response) == "E_NAME_INVALID"

    def test_control_characters_stripped_from_name(self, client: TestClient, headers):
        response = client.post("/lists", json={"name": "a\x01b"}, headers=headers)

        assert response.status_code == 201
        assert data(response)["name"] == "ab"

    def test_control_characters_only_name(self, client: TestClient, headers):
        response = client.post("/lists", json={"name": "\x07"}, headers=headers)

        assert response.status_code == 400
        assert error_code(response) == "E_NAME_INVALID"

    def test_missing_name_is_invalid_request(self, client: TestClient, headers):
        response = client.post("/lists", json={}, headers=headers)

        assert response.status_code == 400
        assert error_code(response) == "E_INVALID_REQUEST"

    def test_patch_omitted_description_kept(self, client: TestClient, headers):
        created = data(
            client.post("/lists", json={"name": "A", "description": "keep me"}, headers=headers)
        )

        response = client.patch(f"/lists/{created['id']}", json={"name": "B"}, headers=headers)

        assert data(response)["description"] == "keep me"

    def test_patch_null_description_clears(self, client: TestClient, headers):
        created = data(
            client.post("/lists", json={"name": "A", "description": "drop me"}, headers=headers)
        )

        response = client.patch(
            f"/lists/{created['id']}", json={"description": None}, headers=headers
        )

        assert data(response)["description"] is None

    def test_delete(self, client: TestClient, headers, list_id):
        assert client.delete(f"/lists/{list_id}", headers=headers).status_code == 204
        response = client.get(f"/lists/{list_id}", headers=headers)
        assert response.status_code == 404
        assert error_code(response) == "E_LIST_NOT_FOUND"

    def test_stranger_gets_403(self, client: TestClient, list_id):
        response = client.get(f"/lists/{list_id}", headers=auth_headers("stranger"))

        assert response.status_code == 403

    def test_malformed_uuid_is_400(self, client: TestClient, headers):
        response = client.get("/lists/not-a-uuid", headers=headers)

        assert response.status_code == 400


class TestMemberRoutes:
    def test_share_flow(self, client: TestClient, headers, list_id):
        client.put(
            "/internal/users/friend",
            json={"email": "friend@example.com", "display_name": "Friend"},
            headers=internal_headers(),
        )

        added = client.post(
            f"/lists/{list_id}/members", json={"subject": "friend"}, headers=headers
        )
        assert added.status_code == 201
        assert data(added)["members"][0]["display_name"] == "Friend"

        friend_view = client.get(f"/lists/{list_id}", headers=auth_headers("friend"))
        assert data(friend_view)["role"] == "viewer"

        promoted = client.patch(
            f"/lists/{list_id}/members/friend", json={"role": "admin"}, headers=headers
        )
        assert data(promoted)["members"][0]["role"] == "admin"

        removed = client.delete(f"/lists/{list_id}/members/friend", headers=headers)
        assert removed.status_code == 204
        assert client.get(f"/lists/{list_id}", headers=auth_headers("friend")).status_code == 403

    def test_duplicate_member_409(self, client: TestClient, headers, list_id):
        client.post(f"/lists/{list_id}/members", json={"subject": "friend"}, headers=headers)

        response = client.post(
            f"/lists/{list_id}/members", json={"subject": "friend"}, headers=headers
        )

        assert response.status_code == 409
        assert error_code(response) == "E_MEMBER_EXISTS"

    def test_unknown_role_is_400(self, client: TestClient, headers, list_id):
        response = client.post(
            f"/lists/{list_id}/members",
            json={"subject": "friend", "role": "creator"},
            headers=headers,
        )

        assert response.status_code == 400


class TestMediaRoutes:
    @respx.mock
    def test_search(self, client: TestClient, headers):
        respx.get(host=TMDB_HOST, path="/3/search/multi").respond(
            200,
            json={"results": [{"id": 27205, "media_type": "movie", "title": "Inception"}]},
        )

        response = client.get("/search", params={"q": "Inception"}, headers=headers)

        assert response.status_code == 200
        assert data(response) == [
            {
                "catalog_id": 27205,
                "kind": "movie",
                "title": "Inception",
                "poster_path": None,
                "release_date": None,
                "overview": None,
                "vote_average": None,
            }
        ]

    def test_search_blank_query(self, client: TestClient, headers):
        response = client.get("/search", params={"q": "  "}, headers=headers)

        assert response.status_code == 400

    @respx.mock
    def test_catalog_outage_is_502(self, client: TestClient, headers):
        respx.get(host=TMDB_HOST, path="/3/search/multi").respond(503)

        response = client.get("/search", params={"q": "alien"}, headers=headers)

        assert response.status_code == 502
        assert error_code(response) == "E_UPSTREAM_UNAVAILABLE"

    @respx.mock
    def test_catalog_non_object_body_is_502(self, client: TestClient, headers):
        respx.get(host=TMDB_HOST, path="/3/search/multi").respond(200, json=[{"id": 1}])

        response = client.get("/search", params={"q": "alien"}, headers=headers)

        assert response.status_code == 502
        assert error_code(response) == "E_UPSTREAM_UNAVAILABLE"

    def test_media_is_idempotent(self, client: TestClient, headers, movie_id):
        # Already stored: no catalog call is made
        response = client.post(
            "/media", json={"catalog_id": 27205, "kind": "movie"}, headers=headers
        )

        assert data(response)["id"] == movie_id

    def test_get_media(self, client: TestClient, headers, show_id):
        response = client.get(f"/media/{show_id}", headers=headers)

        body = data(response)
        assert body["kind"] == "tv"
        assert [s["season_number"] for s in body["seasons"]] == [1, 2]
        assert "raw_catalog_payload" not in body

    def test_unknown_media(self, client: TestClient, headers):
        response = client.get(f"/media/{uuid4()}", headers=headers)

        assert response.status_code == 404
        assert error_code(response) == "E_MEDIA_NOT_FOUND"


class TestItemRoutes:
    @pytest.fixture
    def item_id(self, client: TestClient, headers, list_id, movie_id):
        response = client.post(
            f"/lists/{list_id}/items", json={"media_id": movie_id}, headers=headers
        )
        assert response.status_code == 201
        return data(response)["id"]

    def test_duplicate_add_409(self, client: TestClient, headers, list_id, movie_id, item_id):
        response = client.post(
            f"/lists/{list_id}/items", json={"media_id": movie_id}, headers=headers
        )

        assert response.status_code == 409
        assert error_code(response) == "E_ITEM_EXISTS"

    def test_unknown_status_value_400(self, client: TestClient, headers, item_id):
        response = client.put(f"/items/{item_id}/status", json={"status": "done"}, headers=headers)

        assert response.status_code == 400

    def test_rating_out_of_range(self, client: TestClient, headers, item_id):
        response = client.put(f"/items/{item_id}/rating", json={"rating": 11}, headers=headers)

        assert response.status_code == 400
        assert error_code(response) == "E_RATING_INVALID"

    def test_dates_tri_state(self, client: TestClient, headers, item_id):
        started = 1_600_000_000_000
        client.put(f"/items/{item_id}/dates", json={"started_at": started}, headers=headers)

        kept = client.put(
            f"/items/{item_id}/dates", json={"finished_at": started + 1000}, headers=headers
        )
        assert data(kept)["started_at"] == started
        assert data(kept)["finished_at"] == started + 1000

        cleared = client.put(f"/items/{item_id}/dates", json={"started_at": None}, headers=headers)
        assert data(cleared)["started_at"] is None
        assert data(cleared)["finished_at"] == started + 1000

    def test_notes_with_control_characters(self, client: TestClient, headers, item_id):
        response = client.put(
            f"/items/{item_id}/notes", json={"notes": "hello\x01world"}, headers=headers
        )

        assert response.status_code == 200
        assert data(response)["notes"] == "helloworld"

    def test_tags_and_priority(self, client: TestClient, headers, item_id):
        client.put(f"/items/{item_id}/tags", json={"tags": ["Dream", "dream"]}, headers=headers)
        response = client.put(
            f"/items/{item_id}/priority", json={"priority": "high"}, headers=headers
        )

        assert data(response)["tags"] == ["Dream"]
        assert data(response)["priority"] == "high"

    def test_list_items_sorted(self, client: TestClient, headers, list_id, item_id):
        response = client.get(
            f"/lists/{list_id}/items", params={"sort": "alpha", "limit": 10}, headers=headers
        )

        assert [item["id"] for item in data(response)] == [item_id]
        assert data(response)[0]["media"]["title"] == "Inception"

    def test_unknown_sort_400(self, client: TestClient, headers, list_id):
        response = client.get(f"/lists/{list_id}/items", params={"sort": "random"}, headers=headers)

        assert response.status_code == 400

    def test_export(self, client: TestClient, headers, list_id, item_id):
        response = client.get(f"/lists/{list_id}/export", headers=headers)

        body = data(response)
        assert body["list_name"] == "Horror"
        assert body["items"][0]["genres"] == "Action, Science Fiction"

    def test_delete(self, client: TestClient, headers, item_id):
        assert client.delete(f"/items/{item_id}", headers=headers).status_code == 204
        assert client.get(f"/items/{item_id}", headers=headers).status_code == 404

    def test_season_route_on_movie(self, client: TestClient, headers, item_id):
        response = client.put(
            f"/items/{item_id}/seasons/1/status", json={"status": "watched"}, headers=headers
        )

        assert response.status_code == 400
        assert error_code(response) == "E_INVALID_KIND"


class TestUserRoutes:
    def test_me(self, client: TestClient):
        client.put(
            "/internal/users/me_subject", json={"email": "me@example.com"}, headers=internal_headers()
        )

        response = client.get("/users/me", headers=auth_headers("me_subject"))

        assert data(response)["email"] == "me@example.com"

    def test_me_without_directory_record(self, client: TestClient):
        response = client.get("/users/me", headers=auth_headers("nobody"))

        assert response.status_code == 404
        assert error_code(response) == "E_USER_NOT_FOUND"

    def test_search_excludes_viewer(self, client: TestClient):
        for subject in ("sam", "samantha"):
            client.put(
                f"/internal/users/{subject}",
                json={"email": f"{subject}@example.com"},
                headers=internal_headers(),
            )

        response = client.get(
            "/users/search", params={"email": "sam"}, headers=auth_headers("sam")
        )

        assert [u["external_subject"] for u in data(response)] == ["samantha"]

    def test_invalid_email_on_sync(self, client: TestClient):
        response = client.put(
            "/internal/users/x", json={"email": "nope"}, headers=internal_headers()
        )

        assert response.status_code == 400
        assert error_code(response) == "E_EMAIL_INVALID"

    def test_delete_is_idempotent(self, client: TestClient):
        response = client.delete("/internal/users/ghost", headers=internal_headers())

        assert response.status_code == 204


class TestEndToEnd:
    def test_horror_list(self, client: TestClient, headers, list_id, movie_id, show_id):
        movie_item = data(
            client.post(f"/lists/{list_id}/items", json={"media_id": movie_id}, headers=headers)
        )
        client.put(
            f"/items/{movie_item['id']}/status", json={"status": "watching"}, headers=headers
        )
        watched = client.put(
            f"/items/{movie_item['id']}/status", json={"status": "watched"}, headers=headers
        )
        assert data(watched)["status"] == "watched"
        assert data(watched)["media"]["catalog_id"] == 27205

        tv_item = data(
            client.post(f"/lists/{list_id}/items", json={"media_id": show_id}, headers=headers)
        )
        direct = client.put(
            f"/items/{tv_item['id']}/status", json={"status": "watched"}, headers=headers
        )
        assert direct.status_code == 400
        assert error_code(direct) == "E_STATUS_NOT_ALLOWED"

        first = client.put(
            f"/items/{tv_item['id']}/seasons/1/status", json={"status": "watched"}, headers=headers
        )
        assert data(first)["status"] == "to_watch"

        second = client.put(
            f"/items/{tv_item['id']}/seasons/2/status", json={"status": "watched"}, headers=headers
        )
        assert data(second)["status"] == "watched"
