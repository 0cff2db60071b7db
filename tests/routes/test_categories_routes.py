"""Tests for the /categories endpoints."""
from __future__ import annotations


def _create(client, headers, name, parent_id=None):
    resp = client.post("/categories/", headers=headers, json={"name": name, "parentId": parent_id})
    assert resp.status_code == 201, resp.text
    return resp.json()["category"]


def test_create_nested_and_list_with_books(client, auth_headers):
    fiction = _create(client, auth_headers, "Fiction")
    scifi = _create(client, auth_headers, "Sci-Fi", fiction["id"])
    client.post("/books/", headers=auth_headers, json=[{"title": "Dune", "author": "Frank Herbert", "categoryId": scifi["id"]}])

    assert (scifi["path"], scifi["level"], scifi["parentId"]) == ([fiction["id"]], 1, fiction["id"])

    listed = client.get("/categories/", headers=auth_headers).json()["categories"]
    by_name = {c["name"]: c for c in listed}
    assert by_name["Fiction"]["books"] == []
    [member] = by_name["Sci-Fi"]["books"]
    assert (member["title"], member["author"], member["read"], member["progress"]) == ("Dune", "Frank Herbert", False, 0)


def test_duplicate_sibling_is_conflict(client, auth_headers):
    _create(client, auth_headers, "Fiction")

    resp = client.post("/categories/", headers=auth_headers, json={"name": "Fiction"})

    assert resp.status_code == 409
    assert resp.json()["success"] is False


def test_parent_of_another_user_is_not_found(client, register_headers):
    owner = register_headers("owner@example.com")
    intruder = register_headers("intruder@example.com")
    parent = _create(client, owner, "Private")

    resp = client.post("/categories/", headers=intruder, json={"name": "Sneaky", "parentId": parent["id"]})

    assert resp.status_code == 404


def test_children_and_subtree_endpoints(client, auth_headers):
    root = _create(client, auth_headers, "Root")
    child = _create(client, auth_headers, "Child", root["id"])
    grandchild = _create(client, auth_headers, "Grandchild", child["id"])

    children = client.get(f"/categories/{root['id']}/children", headers=auth_headers).json()["categories"]
    subtree = client.get(f"/categories/{root['id']}/subtree", headers=auth_headers).json()["categories"]

    assert [c["id"] for c in children] == [child["id"]]
    assert [c["id"] for c in subtree] == [child["id"], grandchild["id"]]


def test_update_moves_only_when_parent_given(client, auth_headers):
    a = _create(client, auth_headers, "A")
    b = _create(client, auth_headers, "B")

    renamed = client.put(f"/categories/{a['id']}", headers=auth_headers, json={"name": "A2"}).json()["category"]
    assert (renamed["name"], renamed["parentId"]) == ("A2", None)

    moved = client.put(f"/categories/{a['id']}", headers=auth_headers, json={"parentId": b["id"]}).json()["category"]
    assert (moved["parentId"], moved["path"], moved["level"]) == (b["id"], [b["id"]], 1)

    unmoved = client.put(f"/categories/{a['id']}", headers=auth_headers, json={"description": "x"}).json()["category"]
    assert unmoved["parentId"] == b["id"]

    to_root = client.put(f"/categories/{a['id']}", headers=auth_headers, json={"parentId": None}).json()["category"]
    assert (to_root["parentId"], to_root["level"]) == (None, 0)

    cycle = client.put(f"/categories/{b['id']}", headers=auth_headers, json={"parentId": b["id"]})
    assert cycle.status_code == 400


def test_delete_category_keeps_books(client, auth_headers):
    fiction = _create(client, auth_headers, "Fiction")
    added = client.post(
        "/books/", headers=auth_headers,
        json=[{"title": "Dune", "author": "Frank Herbert", "categoryId": fiction["id"]}],
    ).json()["added"]

    resp = client.delete(f"/categories/{fiction['id']}", headers=auth_headers)

    assert resp.status_code == 200
    assert resp.json()["category"]["id"] == fiction["id"]
    book = client.get(f"/books/{added[0]['id']}", headers=auth_headers).json()["book"]
    assert book["categories"] == []
    breakdown = client.get("/books/stats", headers=auth_headers).json()["stats"]["perCategoryBreakdown"]
    assert breakdown == [{"categoryId": None, "name": "Uncategorized", "total": 1, "read": 0, "unread": 1}]
    assert client.delete(f"/categories/{fiction['id']}", headers=auth_headers).status_code == 404


def test_remove_book_from_category_endpoint(client, auth_headers):
    fiction = _create(client, auth_headers, "Fiction")
    book_id = client.post(
        "/books/", headers=auth_headers,
        json=[{"title": "Dune", "author": "Frank Herbert", "categoryId": fiction["id"]}],
    ).json()["added"][0]["id"]

    resp = client.delete(f"/categories/{fiction['id']}/books/{book_id}", headers=auth_headers)

    assert resp.status_code == 200
    assert resp.json()["book"]["categories"] == []
    assert client.delete(f"/categories/{fiction['id']}/books/4242", headers=auth_headers).status_code == 404


def test_update_clears_description_only_when_sent(client, auth_headers):
    poetry = client.post("/categories/", headers=auth_headers, json={"name": "Poetry", "description": "Rhymes"}).json()["category"]

    renamed = client.put(f"/categories/{poetry['id']}", headers=auth_headers, json={"name": "Verse"}).json()["category"]
    assert renamed["description"] == "Rhymes"

    cleared = client.put(f"/categories/{poetry['id']}", headers=auth_headers, json={"description": None}).json()["category"]
    assert (cleared["name"], cleared["description"]) == ("Verse", None)
