from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from library_api.core.config import settings
from library_api.db.models import User, UserRole
from library_api.services.init_owner import ensure_default_owner


def test_default_owner_exists_after_startup(db_session):
    owners = db_session.query(User).filter(User.email == settings.DEFAULT_OWNER_EMAIL).all()
    assert len(owners) == 1
    owner = owners[0]
    assert owner.role == UserRole.OWNER
    assert owner.lib_id == settings.DEFAULT_OWNER_LIB_ID
    assert owner.name == settings.DEFAULT_OWNER_NAME
    assert owner.contact == settings.DEFAULT_OWNER_CONTACT


# running it again must not create a second owner
def test_bootstrap_is_idempotent(db_session):
    first = ensure_default_owner(db_session)
    second = ensure_default_owner(db_session)

    assert first.id == second.id
    count = db_session.query(User).filter(User.email == settings.DEFAULT_OWNER_EMAIL).count()
    assert count == 1


# storage failures are logged and swallowed; startup keeps going
def test_bootstrap_failure_is_not_fatal(caplog):
    broken = MagicMock()
    broken.query.side_effect = OperationalError("SELECT 1", {}, Exception("disk I/O error"))

    assert ensure_default_owner(broken) is None
    broken.rollback.assert_called_once()
    assert "default_owner_creation_failed" in caplog.text


def test_default_owner_can_log_in(client, owner_auth):
    resp = client.get("/owner/library", auth=owner_auth)
    assert resp.status_code == 200
    assert resp.json() == []


def test_default_owner_cannot_be_deleted(client, owner_auth):
    resp = client.delete("/owner/users/1", auth=owner_auth)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Default owner cannot be deleted"
