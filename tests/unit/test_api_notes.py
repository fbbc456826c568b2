"""
Notes API Unit Tests

Drives the HTTP surface through TestClient against a private in-memory
database; verifies status codes, envelopes and authentication.
"""

import uuid

import pytest
from conftest import OTHER, auth_header, doc


def create_note(client, title="Note", parent=None, note_id=None, user=None):
    payload = {"title": title, "body": doc(title), "parent": parent, "tags": []}
    if note_id is not None:
        payload["id"] = note_id
    response = client.post("/api/notes", json=payload, headers=auth_header(user or "user-1"))
    assert response.status_code == 201, response.text
    return response.json()["note"]


def test_requires_authentication(client):
    assert client.get("/api/notes").status_code == 401

    response = client.get("/api/notes", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"


def test_cookie_authentication(client):
    token = auth_header()["Authorization"].split(" ", 1)[1]
    client.cookies.set("access_token", token)
    try:
        assert client.get("/api/notes").status_code == 200
    finally:
        client.cookies.clear()


def test_create_get_and_replace(client):
    note = create_note(client, "alpha first")

    assert note["user_id"] == "user-1"
    assert note["has_embedding"] is True
    assert "embedding" not in note

    fetched = client.get(f"/api/notes/{note['id']}", headers=auth_header())
    assert fetched.status_code == 200
    assert fetched.json()["note"]["title"] == "alpha first"

    replaced = client.put(
        f"/api/notes/{note['id']}",
        json={"title": "Renamed", "body": doc("x"), "tags": [{"id": "t", "path": []}]},
        headers=auth_header(),
    )
    assert replaced.status_code == 200
    assert replaced.json()["note"]["title"] == "Renamed"
    assert replaced.json()["note"]["tags"] == [{"id": "t", "path": []}]

    revisions = client.get(f"/api/notes/{note['id']}/revisions", headers=auth_header())
    assert [r["title"] for r in revisions.json()["revisions"]] == ["Renamed", "alpha first"]


def test_create_with_client_id(client):
    note_id = str(uuid.uuid4())
    note = create_note(client, "Client id", note_id=note_id)

    assert note["id"] == note_id


def test_put_to_foreign_id_is_404(client):
    note = create_note(client, "Mine")

    response = client.put(
        f"/api/notes/{note['id']}",
        json={"title": "Theirs", "body": doc("x")},
        headers=auth_header(OTHER),
    )
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_invalid_ids_and_bodies_are_422(client):
    assert client.get("/api/notes/not-a-uuid", headers=auth_header()).status_code == 422
    assert client.get("/api/notes?parent=nope", headers=auth_header()).status_code == 422
    assert client.get("/api/notes?limit=0", headers=auth_header()).status_code == 422
    assert client.get("/api/notes?page=0", headers=auth_header()).status_code == 422

    response = client.post(
        "/api/notes", json={"title": "Bad", "body": "{oops"}, headers=auth_header()
    )
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


@pytest.mark.parametrize(
    "body",
    [
        '{"root": {"type": "root", "children": [1]}}',
        '{"root": {"type": "root", "children": {"type": "paragraph"}}}',
        '{"root": {"type": "root", "children": [{"type": "text", "text": 5}]}}',
        '{"root": {"type": "root", "children": [{"type": "list", "children": [null]}]}}',
    ],
)
def test_wrongly_shaped_body_is_422_and_not_stored(client, body):
    response = client.post(
        "/api/notes", json={"title": "Bad", "body": body}, headers=auth_header()
    )

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"
    listing = client.get("/api/notes", headers=auth_header())
    assert listing.json()["pagination"]["total"] == 0


def test_tree_endpoints(client):
    parent = create_note(client, "Parent")
    child = create_note(client, "Child", parent=parent["id"])

    children = client.get(f"/api/notes/{parent['id']}/children", headers=auth_header())
    assert [n["id"] for n in children.json()["notes"]] == [child["id"]]

    roots = client.get("/api/notes", params={"parent": ""}, headers=auth_header())
    assert [n["id"] for n in roots.json()["notes"]] == [parent["id"]]
    assert roots.json()["notes"][0]["has_children"] is True

    scoped = client.get("/api/notes", params={"parent": parent["id"]}, headers=auth_header())
    assert scoped.json()["pagination"]["total"] == 1

    everything = client.get("/api/notes", headers=auth_header())
    assert everything.json()["pagination"] == {
        "page": 1,
        "limit": 50,
        "total": 2,
        "has_more": False,
    }


def test_reparent_cycle_is_400(client):
    a = create_note(client, "A")
    b = create_note(client, "B", parent=a["id"])

    response = client.patch(
        f"/api/notes/{a['id']}/parent", json={"parent": b["id"]}, headers=auth_header()
    )
    assert response.status_code == 400
    assert response.json()["error"] == "circular_reference"

    moved = client.patch(
        f"/api/notes/{b['id']}/parent", json={"parent": None}, headers=auth_header()
    )
    assert moved.json() == {"message": "Note parent updated", "parent": None}


def test_create_under_foreign_parent_is_400(client):
    theirs = create_note(client, "Theirs", user=OTHER)

    response = client.post(
        "/api/notes",
        json={"title": "Mine", "body": doc("x"), "parent": theirs["id"]},
        headers=auth_header(),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_parent"


def test_share_and_public_read(client):
    note = create_note(client, "Public")

    assert client.get(f"/api/shared/notes/{note['id']}").status_code == 404

    response = client.patch(
        f"/api/notes/{note['id']}/share", json={"is_shared": True}, headers=auth_header()
    )
    assert response.json() == {"message": "Note sharing updated", "is_shared": True}

    public = client.get(f"/api/shared/notes/{note['id']}")
    assert public.status_code == 200
    assert public.json()["note"]["title"] == "Public"
    assert public.json()["note"]["user_id"] is None


def test_delete_cascade(client):
    parent = create_note(client, "Parent")
    create_note(client, "Child", parent=parent["id"])

    response = client.delete(f"/api/notes/{parent['id']}", headers=auth_header())
    assert response.json() == {
        "message": "Note and child notes deleted",
        "deleted_count": 2,
    }
    assert client.get(f"/api/notes/{parent['id']}", headers=auth_header()).status_code == 404
    assert client.delete(f"/api/notes/{parent['id']}", headers=auth_header()).status_code == 404


def test_search(client):
    alpha = create_note(client, "alpha")
    create_note(client, "beta")

    response = client.get("/api/notes", params={"search": "alpha"}, headers=auth_header())

    assert response.status_code == 200
    assert [n["id"] for n in response.json()["notes"]] == [alpha["id"]]


def test_search_provider_failure_is_502(client, fake_embedder):
    fake_embedder.failing.add("outage")

    response = client.get("/api/notes", params={"search": "outage"}, headers=auth_header())

    assert response.status_code == 502
    assert response.json()["error"] == "embedding_unavailable"
