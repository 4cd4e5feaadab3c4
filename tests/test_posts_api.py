from datetime import datetime

from bson import ObjectId
from fastapi.testclient import TestClient

from conftest import register, seed_post, seed_user
from quoteversation.main import create_app

POSTS = "/api/v1/posts"


def test_post_lifecycle(client) -> None:
    u_id, u = register(client, "u")
    v_id, v = register(client, "v")
    _, w = register(client, "w")

    res = client.post(POSTS, json={"quote": "hi", "source": {"text": "me", "link": ""}}, headers=u)
    assert res.status_code == 201
    post = res.json()
    assert post["likes"] == []
    assert post["bookmarks"] == []
    assert post["comments"] == []
    assert post["author"] == {"id": u_id, "display_name": "u"}
    assert post["source"] == {"text": "me", "link": ""}
    post_id = post["id"]

    res = client.post(f"{POSTS}/{post_id}/like", headers=v)
    assert res.status_code == 201
    assert res.json()["likes"] == [v_id]

    res = client.delete(f"{POSTS}/{post_id}/like", headers=v)
    assert res.status_code == 200
    assert res.json()["likes"] == []

    assert client.delete(f"{POSTS}/{post_id}", headers=w).status_code == 403
    assert client.delete(f"{POSTS}/{post_id}").status_code == 401
    assert client.delete(f"{POSTS}/{post_id}", headers=u).status_code == 204
    assert client.get(POSTS).json() == []


def test_listing_resolves_authors(client) -> None:
    u_id, u = register(client, "ada")
    client.post(POSTS, json={"quote": "first"}, headers=u)

    (post,) = client.get(POSTS).json()
    assert post["author"] == {"id": u_id, "display_name": "ada"}
    assert post["date_posted"]


def test_double_like_and_unlike_without_like_conflict(client) -> None:
    _, u = register(client, "u")
    post_id = client.post(POSTS, json={"quote": "q"}, headers=u).json()["id"]

    assert client.post(f"{POSTS}/{post_id}/like", headers=u).status_code == 201
    res = client.post(f"{POSTS}/{post_id}/like", headers=u)
    assert res.status_code == 409
    assert res.json()["detail"] == "User has already liked the specified post"

    assert client.delete(f"{POSTS}/{post_id}/like", headers=u).status_code == 200
    res = client.delete(f"{POSTS}/{post_id}/like", headers=u)
    assert res.status_code == 409
    assert res.json()["detail"] == "User has not liked the specified post"


def test_like_requires_session_and_matching_user(client) -> None:
    u_id, u = register(client, "u")
    _, v = register(client, "v")
    post_id = client.post(POSTS, json={"quote": "q"}, headers=u).json()["id"]

    assert client.post(f"{POSTS}/{post_id}/like").status_code == 401
    res = client.post(f"{POSTS}/{post_id}/like", json={"user_id": u_id}, headers=v)
    assert res.status_code == 403
    res = client.request("DELETE", f"{POSTS}/{post_id}/like", json={"user_id": u_id}, headers=v)
    assert res.status_code == 403


def test_like_missing_post(client) -> None:
    _, u = register(client, "u")
    assert client.post(f"{POSTS}/{ObjectId()}/like", headers=u).status_code == 404
    assert client.post(f"{POSTS}/not-an-id/like", headers=u).status_code == 404


def test_create_post_validation(client) -> None:
    u_id, u = register(client, "u")
    _, v = register(client, "v")

    assert client.post(POSTS, json={"quote": "q"}).status_code == 401
    assert client.post(POSTS, json={"quote": "   "}, headers=u).status_code == 400
    assert client.post(POSTS, json={"source": {"text": "x"}}, headers=u).status_code == 422
    assert client.post(POSTS, json={"quote": "q", "author_id": u_id}, headers=v).status_code == 403
    assert client.post(POSTS, json={"quote": "q", "author_id": u_id}, headers=u).status_code == 201


def test_update_post_by_owner_only(client) -> None:
    _, u = register(client, "u")
    _, v = register(client, "v")
    post_id = client.post(
        POSTS, json={"quote": "old", "source": {"text": "src", "link": "http://a"}}, headers=u
    ).json()["id"]

    res = client.patch(f"{POSTS}/{post_id}", json={"quote": "new", "source_text": "other"}, headers=u)
    assert res.status_code == 200
    body = res.json()
    assert body["quote"] == "new"
    assert body["source"] == {"text": "other", "link": "http://a"}

    assert client.patch(f"{POSTS}/{post_id}", json={"quote": "x"}, headers=v).status_code == 403
    assert client.patch(f"{POSTS}/{post_id}", json={"quote": "x"}).status_code == 401
    assert client.patch(f"{POSTS}/{post_id}", json={}, headers=u).status_code == 400
    assert client.patch(f"{POSTS}/{ObjectId()}", json={"quote": "x"}, headers=u).status_code == 404


def test_delete_missing_post(client) -> None:
    _, u = register(client, "u")
    assert client.delete(f"{POSTS}/{ObjectId()}", headers=u).status_code == 404


def _seed_library(store):
    author = seed_user(store, "reader")
    p1 = seed_post(store, author, "Stay hungry, stay foolish", "Steve Jobs", datetime(2020, 1, 1))
    p2 = seed_post(store, author, "To be or not to be", "Shakespeare", datetime(2021, 6, 1))
    p3 = seed_post(store, author, "Simplicity is the ultimate sophistication", "Leonardo da Vinci", datetime(2022, 3, 1))
    return str(p1), str(p2), str(p3)


def _ids(res) -> list[str]:
    assert res.status_code == 200, res.text
    return [p["id"] for p in res.json()]


def test_list_filters(client, store) -> None:
    p1, p2, p3 = _seed_library(store)

    assert _ids(client.get(POSTS)) == [p3, p2, p1]
    assert _ids(client.get(POSTS, params={"source": "Shakespeare"})) == [p2]
    assert _ids(client.get(POSTS, params={"date_lower": "2021-01-01T00:00:00Z"})) == [p3, p2]
    assert _ids(client.get(POSTS, params={"date_upper": "2021-01-01T00:00:00Z"})) == [p1]
    assert _ids(client.get(POSTS, params={"term": "hungry"})) == [p1]
    assert _ids(client.get(POSTS, params={"sort": "date_posted:asc"})) == [p1, p2, p3]

    stages = store.executed_stages[-2]
    assert "$search" in stages[0]
    assert stages[0]["$search"]["compound"]["should"][0]["text"]["query"] == "hungry"


def test_list_rejects_bad_query(client) -> None:
    assert client.get(POSTS, params={"date_lower": "yesterday"}).status_code == 422
    assert client.get(POSTS, params={"sort": "date_posted"}).status_code == 422
    assert client.get(POSTS, params={"sort": "date_posted:up"}).status_code == 422
    assert client.get(POSTS, params={"skip": -1}).status_code == 422


def test_list_fails_when_an_author_is_missing(client, store) -> None:
    author = seed_user(store, "reader")
    seed_post(store, author, "kept", "a", datetime(2020, 1, 1))
    seed_post(store, ObjectId(), "orphan", "b", datetime(2021, 1, 1))

    res = client.get(POSTS)
    assert res.status_code == 404


def test_unexpected_failures_are_opaque(settings, store, sessions) -> None:
    class BrokenStore(type(store)):
        async def aggregate_posts(self, stages):
            raise RuntimeError("connection string leaked here")

    app = create_app(settings, store=BrokenStore(), sessions=sessions)
    res = TestClient(app, raise_server_exceptions=False).get(POSTS)
    assert res.status_code == 500
    assert res.json() == {"detail": "Internal Server Error"}
