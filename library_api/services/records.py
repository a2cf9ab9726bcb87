"""
Generic record store helpers shared by every entity.

Each helper runs one unit of work on the session it is given and
translates SQLAlchemy failures into the domain errors of
``library_api.core.errors``.
"""
from typing import Any, Iterable, Type, TypeVar

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from library_api.core.errors import ConflictError, NotFoundError, StorageError
from library_api.core.logging import get_logger

logger = get_logger("db.records")

ModelT = TypeVar("ModelT")


def commit_or_raise(db: Session, operation: str) -> None:
    """Commits the session, rolling back and raising a domain error on failure."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning(
            "integrity_error",
            extra={"operation": operation, "error": str(exc.orig)},
        )
        raise ConflictError("Record conflicts with an existing one") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("storage_error", extra={"operation": operation}, exc_info=True)
        raise StorageError() from exc


def create_record(db: Session, record: ModelT) -> ModelT:
    db.add(record)
    commit_or_raise(db, f"create_{type(record).__tablename__}")
    db.refresh(record)
    return record


def get_record(db: Session, model: Type[ModelT], key: Any, label: str) -> ModelT:
    record = db.get(model, key)
    if record is None:
        raise NotFoundError(f"{label} not found")
    return record


def update_record(db: Session, record: ModelT, changes: dict[str, Any]) -> ModelT:
    for field, value in changes.items():
        setattr(record, field, value)
    commit_or_raise(db, f"update_{type(record).__tablename__}")
    db.refresh(record)
    return record


def delete_record(db: Session, record: Any) -> None:
    db.delete(record)
    commit_or_raise(db, f"delete_{type(record).__tablename__}")


def list_records(
    db: Session,
    model: Type[ModelT],
    skip: int = 0,
    limit: int = 100,
    filters: Iterable[Any] = (),
) -> list[ModelT]:
    query = db.query(model)
    for criterion in filters:
        query = query.filter(criterion)
    primary_key = inspect(model).primary_key[0]
    return query.order_by(primary_key).offset(skip).limit(limit).all()
