from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from library_api.api.v1.dependencies import get_db
from library_api.api.v1.dependencies_auth import get_current_user, require_role
from library_api.db.models import IssueRegistry, RequestEvent, User, UserRole
from library_api.schemas.book import BookRead
from library_api.schemas.lending import IssueRead, RequestCreate, RequestRead
from library_api.services import inventory_service, lending_service

router = APIRouter(
    prefix="/reader",
    tags=["reader"],
    dependencies=[Depends(require_role(UserRole.READER))],
)


# ---- Create a borrow/return request ----
@router.post("/requests", response_model=RequestRead, status_code=status.HTTP_201_CREATED)
def create_request(
    payload: RequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # reader_id always comes from the credentials, never from the body
    return lending_service.create_request(db, current_user, payload.book_id, payload.request_type)


# ---- Own history ----
@router.get("/requests", response_model=List[RequestRead])
def my_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return (
        db.query(RequestEvent)
        .filter(RequestEvent.reader_id == current_user.id)
        .order_by(RequestEvent.request_date.desc())
        .all()
    )


@router.get("/issues", response_model=List[IssueRead])
def my_issues(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return (
        db.query(IssueRegistry)
        .filter(IssueRegistry.reader_id == current_user.id)
        .order_by(IssueRegistry.issue_date.desc())
        .all()
    )


# ---- Books with a copy on the shelf ----
@router.get("/books", response_model=List[BookRead])
def list_available_books(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return inventory_service.list_available_books(db, current_user.lib_id)
