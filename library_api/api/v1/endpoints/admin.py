# library_api/api/v1/endpoints/admin.py
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from library_api.api.v1.dependencies import get_db
from library_api.api.v1.dependencies_auth import get_current_user, require_role
from library_api.core.errors import NotFoundError
from library_api.core.logging import get_logger
from library_api.db.models import (
    BookInventory,
    IssueRegistry,
    IssueStatus,
    RequestEvent,
    RequestStatus,
    RequestType,
    User,
    UserRole,
)
from library_api.schemas.book import BookCreate, BookRead, BookUpdate
from library_api.schemas.user import UserRead
from library_api.schemas.lending import (
    IssueRead,
    ReaderDetail,
    RequestAction,
    RequestDecision,
    RequestDecisionResult,
    RequestRead,
)
from library_api.services import inventory_service, lending_service
from library_api.services.records import get_record, list_records

logger = get_logger("api.admin")

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_role(UserRole.ADMIN))],
)


# ---- Inventory ----
@router.post("/books", response_model=BookRead, status_code=status.HTTP_201_CREATED)
def create_book(
    payload: BookCreate,
    db: Session = Depends(get_db),
):
    return inventory_service.create_book(db, payload.model_dump())


@router.get("/books", response_model=List[BookRead])
def list_books(
    lib_id: Optional[int] = Query(None),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    filters = [BookInventory.lib_id == lib_id] if lib_id is not None else []
    return list_records(db, BookInventory, skip, limit, filters)


@router.get("/books/{isbn}", response_model=BookRead)
def get_book(
    isbn: str,
    db: Session = Depends(get_db),
):
    return inventory_service.get_book(db, isbn)


@router.put("/books/{isbn}", response_model=BookRead)
def update_book(
    isbn: str,
    payload: BookUpdate,
    db: Session = Depends(get_db),
):
    return inventory_service.update_book(
        db, isbn, payload.model_dump(exclude_unset=True, exclude_none=True)
    )


@router.delete("/books/{isbn}", status_code=status.HTTP_204_NO_CONTENT)
def delete_book(
    isbn: str,
    db: Session = Depends(get_db),
):
    inventory_service.delete_book(db, isbn)
    return None


# ---- Requests ----
@router.get("/requests", response_model=List[RequestRead])
def list_requests(
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    request_type: Optional[RequestType] = Query(None),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    filters = []
    if status_filter is not None:
        filters.append(RequestEvent.status == status_filter)
    if request_type is not None:
        filters.append(RequestEvent.request_type == request_type)
    return list_records(db, RequestEvent, skip, limit, filters)


@router.get("/requests/{req_id}", response_model=RequestRead)
def get_request(
    req_id: int,
    db: Session = Depends(get_db),
):
    return get_record(db, RequestEvent, req_id, "Request")


@router.post("/requests/{req_id}", response_model=RequestDecisionResult)
def decide_request(
    req_id: int,
    payload: Optional[RequestDecision] = Body(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Approves (default) or rejects a pending request.

    Approving a borrow request takes a copy and opens an issue record;
    approving a return request closes the reader's issue and restocks it.
    """
    decision = payload or RequestDecision()

    if decision.action == RequestAction.REJECT:
        request_event = lending_service.reject_request(db, req_id, current_user)
        return RequestDecisionResult(request=RequestRead.model_validate(request_event))

    request_event, issue = lending_service.approve_request(db, req_id, current_user)
    return RequestDecisionResult(
        request=RequestRead.model_validate(request_event),
        issue=IssueRead.model_validate(issue),
    )


# ---- Issues ----
@router.get("/issues", response_model=List[IssueRead])
def list_issues(
    status_filter: Optional[IssueStatus] = Query(None, alias="status"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    filters = [IssueRegistry.issue_status == status_filter] if status_filter is not None else []
    return list_records(db, IssueRegistry, skip, limit, filters)


@router.post("/issues/run-overdue-job", status_code=status.HTTP_200_OK)
def run_overdue_job(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Runs the job that marks every ISSUED record past its
    expected_return_date as OVERDUE.
    """
    updated_count = lending_service.mark_overdue_issues(db)

    logger.info(
        "Overdue job executed",
        extra={
            "operation": "issue_overdue_job",
            "resource": "issue",
            "updated_count": updated_count,
            "status_code": 200,
            "run_by_user_id": current_user.id,
        },
    )

    return {"updated_overdue_issues": updated_count}


@router.get("/issues/{issue_id}", response_model=IssueRead)
def get_issue(
    issue_id: int,
    db: Session = Depends(get_db),
):
    return get_record(db, IssueRegistry, issue_id, "Issue")


@router.post("/issues/{issue_id}/return", response_model=IssueRead)
def return_issue(
    issue_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return lending_service.return_issue(db, issue_id, current_user)


# ---- Readers ----
@router.get("/readers/{reader_id}", response_model=ReaderDetail)
def get_reader(
    reader_id: int,
    db: Session = Depends(get_db),
):
    reader = db.get(User, reader_id)
    if reader is None or reader.role != UserRole.READER:
        raise NotFoundError("Reader not found")

    requests = (
        db.query(RequestEvent)
        .filter(RequestEvent.reader_id == reader_id)
        .order_by(RequestEvent.request_date.desc())
        .all()
    )
    issues = (
        db.query(IssueRegistry)
        .filter(IssueRegistry.reader_id == reader_id)
        .order_by(IssueRegistry.issue_date.desc())
        .all()
    )
    return ReaderDetail(
        reader=UserRead.model_validate(reader),
        requests=[RequestRead.model_validate(r) for r in requests],
        issues=[IssueRead.model_validate(i) for i in issues],
    )
