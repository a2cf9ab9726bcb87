from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from library_api.core.config import settings
from library_api.core.logging import get_logger
from library_api.core.security import hash_password
from library_api.db.models import User, UserRole

logger = get_logger("startup.owner")


def get_default_owner(db: Session) -> User | None:
    return (
        db.query(User)
        .filter(
            User.email == settings.DEFAULT_OWNER_EMAIL,
            User.role == UserRole.OWNER,
            User.lib_id == settings.DEFAULT_OWNER_LIB_ID,
        )
        .first()
    )


def ensure_default_owner(db: Session) -> User | None:
    """
    Creates the default owner of library 1 when it is missing.

    Safe to run on every start. A storage failure is logged and the
    process keeps running without an owner.
    """
    try:
        owner = get_default_owner(db)
        if owner:
            return owner

        owner = User(
            name=settings.DEFAULT_OWNER_NAME,
            email=settings.DEFAULT_OWNER_EMAIL,
            contact=settings.DEFAULT_OWNER_CONTACT,
            role=UserRole.OWNER,
            lib_id=settings.DEFAULT_OWNER_LIB_ID,
            hashed_password=hash_password(settings.DEFAULT_OWNER_PASSWORD),
        )
        db.add(owner)
        db.commit()
        db.refresh(owner)
    except SQLAlchemyError:
        db.rollback()
        logger.error(
            "default_owner_creation_failed",
            extra={"operation": "bootstrap_owner", "resource": "user"},
            exc_info=True,
        )
        return None

    logger.info(
        "default_owner_created",
        extra={"operation": "bootstrap_owner", "resource": "user", "owner_id": owner.id},
    )
    return owner
