from datetime import datetime, timedelta, timezone
from typing import Callable, TypeVar

from sqlalchemy import case, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from library_api.core.config import settings
from library_api.core.errors import (
    CapacityError,
    InvalidTransitionError,
    LibraryError,
    NotFoundError,
    StorageError,
)
from library_api.core.logging import get_logger
from library_api.db.models import (
    ACTIVE_ISSUE_STATUSES,
    BookInventory,
    IssueRegistry,
    IssueStatus,
    RequestEvent,
    RequestStatus,
    RequestType,
    User,
)
from library_api.services.inventory_service import get_book
from library_api.services.records import commit_or_raise

logger = get_logger("services.lending")

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def find_active_issue(db: Session, reader_id: int, isbn: str) -> IssueRegistry | None:
    return (
        db.query(IssueRegistry)
        .filter(
            IssueRegistry.reader_id == reader_id,
            IssueRegistry.isbn == isbn,
            IssueRegistry.issue_status.in_(ACTIVE_ISSUE_STATUSES),
        )
        .order_by(IssueRegistry.issue_date)
        .first()
    )


def create_request(
    db: Session,
    reader: User,
    book_id: str,
    request_type: RequestType = RequestType.BORROW,
) -> RequestEvent:
    """Records a reader's ask to borrow or return a book; no admin action yet."""
    get_book(db, book_id)

    if request_type == RequestType.RETURN and find_active_issue(db, reader.id, book_id) is None:
        raise InvalidTransitionError("You have no copy of this book to return")

    request_event = RequestEvent(
        book_id=book_id,
        reader_id=reader.id,
        request_date=utcnow(),
        request_type=request_type,
        status=RequestStatus.PENDING,
    )
    db.add(request_event)
    commit_or_raise(db, "request_create")
    db.refresh(request_event)

    logger.info(
        "Request created",
        extra={
            "operation": "request_create",
            "resource": "request_event",
            "req_id": request_event.req_id,
            "isbn": book_id,
            "reader_id": reader.id,
            "request_type": request_type.value,
            "old_status": None,
            "new_status": RequestStatus.PENDING.value,
        },
    )
    return request_event


def _close_request(
    db: Session,
    req_id: int,
    new_status: RequestStatus,
    admin: User,
    now: datetime,
) -> RequestEvent:
    """
    Moves a pending request to ``new_status`` inside the open transaction.

    The status check and the write are one conditional UPDATE, so a request
    can only be acted upon once even under concurrent admins.
    """
    result = db.execute(
        update(RequestEvent)
        .where(
            RequestEvent.req_id == req_id,
            RequestEvent.status == RequestStatus.PENDING,
        )
        .values(status=new_status, approval_date=now, approver_id=admin.id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        if db.get(RequestEvent, req_id) is None:
            raise NotFoundError("Request not found")
        raise InvalidTransitionError("Request has already been processed")

    return db.get(RequestEvent, req_id, populate_existing=True)


def _issue_copy(db: Session, request_event: RequestEvent, admin: User, now: datetime) -> IssueRegistry:
    if db.get(BookInventory, request_event.book_id) is None:
        raise NotFoundError("Book not found")

    # guard and decrement in one statement: available_copies never drops below 0
    result = db.execute(
        update(BookInventory)
        .where(
            BookInventory.isbn == request_event.book_id,
            BookInventory.available_copies > 0,
        )
        .values(available_copies=BookInventory.available_copies - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise CapacityError()

    issue = IssueRegistry(
        isbn=request_event.book_id,
        reader_id=request_event.reader_id,
        issue_approver_id=admin.id,
        issue_status=IssueStatus.ISSUED,
        issue_date=now,
        expected_return_date=now + timedelta(days=settings.LOAN_PERIOD_DAYS),
    )
    db.add(issue)
    db.flush()
    return issue


def _release_copy(
    db: Session,
    issue_id: int,
    admin: User,
    now: datetime,
) -> tuple[IssueRegistry, IssueStatus]:
    """Closes an active issue and restocks its copy; returns the issue and its prior status."""
    current = db.get(IssueRegistry, issue_id, populate_existing=True)
    if current is None:
        raise NotFoundError("Issue not found")
    previous_status = current.issue_status

    result = db.execute(
        update(IssueRegistry)
        .where(
            IssueRegistry.issue_id == issue_id,
            IssueRegistry.issue_status.in_(ACTIVE_ISSUE_STATUSES),
        )
        .values(
            issue_status=IssueStatus.RETURNED,
            return_date=now,
            return_approver_id=admin.id,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InvalidTransitionError("Book is not currently issued")

    issue = db.get(IssueRegistry, issue_id, populate_existing=True)

    # clamp: a return never pushes available_copies past total_copies
    restocked = db.execute(
        update(BookInventory)
        .where(BookInventory.isbn == issue.isbn)
        .values(
            available_copies=case(
                (
                    BookInventory.available_copies < BookInventory.total_copies,
                    BookInventory.available_copies + 1,
                ),
                else_=BookInventory.available_copies,
            )
        )
        .execution_options(synchronize_session=False)
    )
    if restocked.rowcount == 0:
        logger.warning(
            "Returned issue references a missing book",
            extra={"operation": "issue_return", "resource": "issue", "issue_id": issue_id, "isbn": issue.isbn},
        )
    return issue, previous_status


def _run_transition(db: Session, operation: str, step: Callable[[], T]) -> T:
    """Runs ``step`` and commits it; any failure rolls the whole unit back."""
    try:
        outcome = step()
        db.commit()
    except LibraryError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("storage_error", extra={"operation": operation}, exc_info=True)
        raise StorageError() from exc
    return outcome


def approve_request(db: Session, req_id: int, admin: User) -> tuple[RequestEvent, IssueRegistry | None]:
    """
    Approves a pending request.

    - borrow: takes one available copy and opens an issue record.
    - return: closes the reader's active issue for the book and restocks it.

    Returns the updated request and the issue it created or closed.
    """
    now = utcnow()

    def step():
        request_event = _close_request(db, req_id, RequestStatus.APPROVED, admin, now)
        if db.get(User, request_event.reader_id) is None:
            raise NotFoundError("Reader not found")
        if request_event.request_type == RequestType.BORROW:
            issue = _issue_copy(db, request_event, admin, now)
        else:
            active = find_active_issue(db, request_event.reader_id, request_event.book_id)
            if active is None:
                raise InvalidTransitionError("Reader has no copy of this book to return")
            issue, _ = _release_copy(db, active.issue_id, admin, now)
        return request_event, issue

    try:
        request_event, issue = _run_transition(db, "request_approve", step)
    except CapacityError:
        logger.warning(
            "Approval rejected: no available copies",
            extra={
                "operation": "request_approve",
                "resource": "request_event",
                "req_id": req_id,
                "status_code": CapacityError.status_code,
            },
        )
        raise

    db.refresh(request_event)
    db.refresh(issue)

    logger.info(
        "Request approved",
        extra={
            "operation": "request_approve",
            "resource": "request_event",
            "req_id": request_event.req_id,
            "issue_id": issue.issue_id,
            "isbn": request_event.book_id,
            "reader_id": request_event.reader_id,
            "request_type": request_event.request_type.value,
            "old_status": RequestStatus.PENDING.value,
            "new_status": RequestStatus.APPROVED.value,
            "issue_status": issue.issue_status.value,
        },
    )
    return request_event, issue


def reject_request(db: Session, req_id: int, admin: User) -> RequestEvent:
    now = utcnow()
    request_event = _run_transition(
        db,
        "request_reject",
        lambda: _close_request(db, req_id, RequestStatus.REJECTED, admin, now),
    )
    db.refresh(request_event)

    logger.info(
        "Request rejected",
        extra={
            "operation": "request_reject",
            "resource": "request_event",
            "req_id": request_event.req_id,
            "isbn": request_event.book_id,
            "reader_id": request_event.reader_id,
            "old_status": RequestStatus.PENDING.value,
            "new_status": RequestStatus.REJECTED.value,
        },
    )
    return request_event


def return_issue(db: Session, issue_id: int, admin: User) -> IssueRegistry:
    now = utcnow()
    issue, previous_status = _run_transition(
        db,
        "issue_return",
        lambda: _release_copy(db, issue_id, admin, now),
    )
    db.refresh(issue)

    logger.info(
        "Book returned",
        extra={
            "operation": "issue_return",
            "resource": "issue",
            "issue_id": issue.issue_id,
            "isbn": issue.isbn,
            "reader_id": issue.reader_id,
            "old_status": previous_status.value,
            "new_status": IssueStatus.RETURNED.value,
        },
    )
    return issue


def mark_overdue_issues(db: Session) -> int:
    """
    Marks every ISSUED record whose expected_return_date has passed as OVERDUE.
    Returns the number of records updated.
    Meant to be triggered by a system job (cron, scheduler, admin endpoint).
    """
    now = utcnow()

    def step():
        result = db.execute(
            update(IssueRegistry)
            .where(
                IssueRegistry.issue_status == IssueStatus.ISSUED,
                IssueRegistry.expected_return_date < now,
            )
            .values(issue_status=IssueStatus.OVERDUE)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    updated_count = _run_transition(db, "issue_overdue_job", step)
    db.expire_all()
    return updated_count
