from typing import Any

from sqlalchemy.orm import Session

from library_api.core.errors import ConflictError, ValidationError
from library_api.core.logging import get_logger
from library_api.db.models import (
    ACTIVE_ISSUE_STATUSES,
    BookInventory,
    IssueRegistry,
    Library,
    RequestEvent,
    RequestStatus,
)
from library_api.services.records import (
    create_record,
    delete_record,
    get_record,
    update_record,
)

logger = get_logger("services.inventory")


def check_copy_bounds(total_copies: int, available_copies: int) -> None:
    if total_copies < 0:
        raise ValidationError("total_copies cannot be negative")
    if available_copies < 0:
        raise ValidationError("available_copies cannot be negative")
    if available_copies > total_copies:
        raise ValidationError("available_copies cannot exceed total_copies")


def ensure_library_exists(db: Session, lib_id: int) -> Library:
    library = db.get(Library, lib_id)
    if library is None:
        raise ValidationError("Library not found")
    return library


def get_book(db: Session, isbn: str) -> BookInventory:
    return get_record(db, BookInventory, isbn, "Book")


def create_book(db: Session, data: dict[str, Any]) -> BookInventory:
    ensure_library_exists(db, data["lib_id"])

    if data.get("available_copies") is None:
        # all copies start on the shelf
        data["available_copies"] = data["total_copies"]
    check_copy_bounds(data["total_copies"], data["available_copies"])

    if db.get(BookInventory, data["isbn"]) is not None:
        raise ConflictError("ISBN already exists")

    book = create_record(db, BookInventory(**data))
    logger.info(
        "Book created",
        extra={
            "operation": "book_create",
            "resource": "book",
            "isbn": book.isbn,
            "lib_id": book.lib_id,
            "total_copies": book.total_copies,
        },
    )
    return book


def update_book(db: Session, isbn: str, changes: dict[str, Any]) -> BookInventory:
    book = get_book(db, isbn)

    if "lib_id" in changes:
        ensure_library_exists(db, changes["lib_id"])

    total = changes.get("total_copies", book.total_copies)
    available = changes.get("available_copies", book.available_copies)
    check_copy_bounds(total, available)

    book = update_record(db, book, changes)
    logger.info(
        "Book updated",
        extra={
            "operation": "book_update",
            "resource": "book",
            "isbn": book.isbn,
            "fields": sorted(changes),
        },
    )
    return book


def delete_book(db: Session, isbn: str) -> None:
    book = get_book(db, isbn)

    on_loan = (
        db.query(IssueRegistry)
        .filter(
            IssueRegistry.isbn == isbn,
            IssueRegistry.issue_status.in_(ACTIVE_ISSUE_STATUSES),
        )
        .count()
    )
    if on_loan:
        raise ConflictError("Book has copies on loan")

    pending = (
        db.query(RequestEvent)
        .filter(
            RequestEvent.book_id == isbn,
            RequestEvent.status == RequestStatus.PENDING,
        )
        .count()
    )
    if pending:
        raise ConflictError("Book has pending requests")

    delete_record(db, book)
    logger.info(
        "Book deleted",
        extra={"operation": "book_delete", "resource": "book", "isbn": isbn},
    )


def list_available_books(db: Session, lib_id: int | None = None) -> list[BookInventory]:
    query = db.query(BookInventory).filter(BookInventory.available_copies > 0)
    if lib_id is not None:
        query = query.filter(BookInventory.lib_id == lib_id)
    return query.order_by(BookInventory.title).all()
