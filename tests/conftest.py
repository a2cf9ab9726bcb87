# test configuration
import os
import sys
import tempfile
from pathlib import Path
from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient

# ======================================================
# sys.path so that 'library_api/' is importable, and a throwaway
# SQLite file: both must be set before the app is imported
# ======================================================
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

_DB_DIR = Path(tempfile.mkdtemp(prefix="library_api_tests_"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test_library.db'}"

# ======================================================
# Application imports
# ======================================================
from library_api.main import app
from library_api.core.config import settings
from library_api.db.session import Base, SessionLocal, engine
from library_api.services.init_owner import ensure_default_owner


# ======================================================
# DB FIXTURES
# ======================================================
@pytest.fixture(autouse=True)
def fresh_db() -> Generator:
    """
    Every test starts from empty tables plus the bootstrap owner (id 1).
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        ensure_default_owner(db)
    yield


@pytest.fixture
def db_session() -> Generator:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# ======================================================
# CLIENT FIXTURE
# ======================================================
@pytest.fixture(scope="session")
def client():
    """
    FastAPI TestClient (runs the lifespan).
    """
    with TestClient(app) as c:
        yield c


# ======================================================
# OWNER / LIBRARY FIXTURES
# ======================================================
@pytest.fixture
def owner_auth():
    return (settings.DEFAULT_OWNER_EMAIL, settings.DEFAULT_OWNER_PASSWORD)


@pytest.fixture
def library_id(client: TestClient, owner_auth) -> int:
    resp = client.post("/owner/library", json={"name": "Central"}, auth=owner_auth)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def create_user(
    client: TestClient,
    owner_auth,
    email: str,
    role: str,
    lib_id: int,
    password: str = "Password123!",
) -> Dict:
    """Creates a user through the owner endpoint and returns it with its credentials."""
    resp = client.post(
        "/owner/users",
        json={
            "name": f"{role.title()} Test",
            "email": email,
            "contact": "555-000-1111",
            "password": password,
            "role": role,
            "lib_id": lib_id,
        },
        auth=owner_auth,
    )
    assert resp.status_code == 201, resp.text
    user = resp.json()
    user["auth"] = (email, password)
    return user


@pytest.fixture
def make_user(client: TestClient, owner_auth, library_id):
    """Factory: make_user("x@example.com", "reader") creates a user in the test library."""
    def _make(email: str, role: str, lib_id: int | None = None, password: str = "Password123!") -> Dict:
        return create_user(client, owner_auth, email, role, lib_id or library_id, password)

    return _make


# ======================================================
# ADMIN / READER FIXTURES
# ======================================================
@pytest.fixture
def admin(client: TestClient, owner_auth, library_id) -> Dict:
    return create_user(client, owner_auth, "admin_test@example.com", "admin", library_id)


@pytest.fixture
def reader(client: TestClient, owner_auth, library_id) -> Dict:
    return create_user(client, owner_auth, "reader_test@example.com", "reader", library_id)


@pytest.fixture
def admin_auth(admin):
    return admin["auth"]


@pytest.fixture
def reader_auth(reader):
    return reader["auth"]


# ======================================================
# INVENTORY FIXTURE
# ======================================================
@pytest.fixture
def make_book(client: TestClient, admin_auth, library_id):
    """Factory: make_book("X1", total_copies=2) creates a book as admin."""
    def _make(isbn: str, total_copies: int = 1, **extra) -> Dict:
        payload = {
            "isbn": isbn,
            "lib_id": library_id,
            "title": f"Book {isbn}",
            "authors": "Test Author",
            "publisher": "Test Press",
            "version": "1st",
            "total_copies": total_copies,
        }
        payload.update(extra)
        resp = client.post("/admin/books", json=payload, auth=admin_auth)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make
