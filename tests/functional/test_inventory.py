from fastapi.testclient import TestClient

# Book inventory, managed by ADMIN; readers only see what is on the shelf


def _book_payload(isbn: str, lib_id: int, **extra):
    payload = {
        "isbn": isbn,
        "lib_id": lib_id,
        "title": "Dune",
        "authors": "Frank Herbert",
        "publisher": "Chilton",
        "version": "1st",
        "total_copies": 3,
    }
    payload.update(extra)
    return payload


def test_admin_can_create_book(client: TestClient, admin_auth, library_id):
    resp = client.post("/admin/books", json=_book_payload("ISBN-1", library_id), auth=admin_auth)
    assert resp.status_code == 201, resp.text
    book = resp.json()
    assert book["isbn"] == "ISBN-1"
    # all copies start available
    assert book["total_copies"] == 3
    assert book["available_copies"] == 3

    resp = client.get("/admin/books/ISBN-1", auth=admin_auth)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Dune"


def test_duplicate_isbn_is_conflict(client: TestClient, admin_auth, library_id, make_book):
    make_book("DUP-1", total_copies=2)

    resp = client.post("/admin/books", json=_book_payload("DUP-1", library_id), auth=admin_auth)
    assert resp.status_code == 409
    assert resp.json()["detail"] == "ISBN already exists"

    # the first record was not overwritten
    assert client.get("/admin/books/DUP-1", auth=admin_auth).json()["total_copies"] == 2


def test_copy_bounds_are_validated_on_create(client: TestClient, admin_auth, library_id):
    resp = client.post(
        "/admin/books",
        json=_book_payload("BAD-1", library_id, total_copies=2, available_copies=3),
        auth=admin_auth,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "available_copies cannot exceed total_copies"

    resp = client.post(
        "/admin/books",
        json=_book_payload("BAD-2", library_id, total_copies=-1),
        auth=admin_auth,
    )
    assert resp.status_code == 400


def test_book_needs_existing_library(client: TestClient, admin_auth):
    resp = client.post("/admin/books", json=_book_payload("NOLIB-1", 77), auth=admin_auth)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Library not found"


def test_update_book_keeps_bounds(client: TestClient, admin_auth, make_book):
    make_book("UPD-1", total_copies=3)

    resp = client.put("/admin/books/UPD-1", json={"title": "Dune Messiah", "total_copies": 5}, auth=admin_auth)
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["title"] == "Dune Messiah"
    assert data["total_copies"] == 5
    assert data["available_copies"] == 3

    # cannot push available above total, nor shrink total under available
    resp = client.put("/admin/books/UPD-1", json={"available_copies": 6}, auth=admin_auth)
    assert resp.status_code == 400
    resp = client.put("/admin/books/UPD-1", json={"total_copies": 2}, auth=admin_auth)
    assert resp.status_code == 400

    book = client.get("/admin/books/UPD-1", auth=admin_auth).json()
    assert (book["total_copies"], book["available_copies"]) == (5, 3)


def test_missing_book_is_not_found(client: TestClient, admin_auth):
    assert client.get("/admin/books/NOPE", auth=admin_auth).status_code == 404
    assert client.put("/admin/books/NOPE", json={"title": "X"}, auth=admin_auth).status_code == 404
    resp = client.delete("/admin/books/NOPE", auth=admin_auth)
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Book not found"}


def test_admin_can_delete_book(client: TestClient, admin_auth, make_book):
    make_book("DEL-1")
    assert client.delete("/admin/books/DEL-1", auth=admin_auth).status_code == 204
    assert client.get("/admin/books/DEL-1", auth=admin_auth).status_code == 404


def test_book_on_loan_cannot_be_deleted(client: TestClient, admin_auth, reader_auth, make_book):
    make_book("LOAN-1")
    req = client.post("/reader/requests", json={"book_id": "LOAN-1"}, auth=reader_auth).json()
    assert client.post(f"/admin/requests/{req['req_id']}", auth=admin_auth).status_code == 200

    resp = client.delete("/admin/books/LOAN-1", auth=admin_auth)
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Book has copies on loan"


def test_book_with_pending_requests_cannot_be_deleted(client: TestClient, admin_auth, reader_auth, make_book):
    make_book("WAIT-1")
    req = client.post("/reader/requests", json={"book_id": "WAIT-1"}, auth=reader_auth).json()

    resp = client.delete("/admin/books/WAIT-1", auth=admin_auth)
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Book has pending requests"
    assert client.get("/admin/books/WAIT-1", auth=admin_auth).status_code == 200

    # once the request is settled the book can go
    client.post(f"/admin/requests/{req['req_id']}", json={"action": "reject"}, auth=admin_auth)
    assert client.delete("/admin/books/WAIT-1", auth=admin_auth).status_code == 204


def test_list_books_filters_by_library(client: TestClient, owner_auth, admin_auth, library_id, make_book):
    other = client.post("/owner/library", json={"name": "Other"}, auth=owner_auth).json()
    make_book("LIB-A")
    make_book("LIB-B", lib_id=other["id"])

    all_books = client.get("/admin/books", auth=admin_auth).json()
    assert {b["isbn"] for b in all_books} == {"LIB-A", "LIB-B"}

    scoped = client.get("/admin/books", params={"lib_id": library_id}, auth=admin_auth).json()
    assert [b["isbn"] for b in scoped] == ["LIB-A"]


# the reader only sees books of their library with a copy on the shelf
def test_reader_lists_available_books(client: TestClient, owner_auth, admin_auth, reader_auth, make_book):
    other = client.post("/owner/library", json={"name": "Other"}, auth=owner_auth).json()
    make_book("AVAIL-1", total_copies=2)
    make_book("EMPTY-1", total_copies=1, available_copies=0)
    make_book("ELSEWHERE-1", lib_id=other["id"])

    resp = client.get("/reader/books", auth=reader_auth)
    assert resp.status_code == 200
    assert [b["isbn"] for b in resp.json()] == ["AVAIL-1"]
