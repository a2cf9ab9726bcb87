from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from library_api.api.v1.dependencies import get_db
from library_api.api.v1.dependencies_auth import require_role
from library_api.core.config import settings
from library_api.core.errors import ConflictError, ValidationError
from library_api.core.logging import get_logger
from library_api.core.security import hash_password
from library_api.db.models import (
    ACTIVE_ISSUE_STATUSES,
    BookInventory,
    IssueRegistry,
    Library,
    RequestEvent,
    RequestStatus,
    User,
    UserRole,
)
from library_api.schemas.library import LibraryCreate, LibraryRead, LibraryUpdate
from library_api.schemas.user import UserCreate, UserRead, UserUpdate
from library_api.services.inventory_service import ensure_library_exists
from library_api.services.records import (
    create_record,
    delete_record,
    get_record,
    list_records,
    update_record,
)

logger = get_logger("api.owner")

# Only OWNER can use this router
router = APIRouter(
    prefix="/owner",
    tags=["owner"],
    dependencies=[Depends(require_role(UserRole.OWNER))],
)


# ---- Libraries ----
@router.post("/library", response_model=LibraryRead, status_code=status.HTTP_201_CREATED)
def create_library(
    payload: LibraryCreate,
    db: Session = Depends(get_db),
):
    library = create_record(db, Library(name=payload.name))
    logger.info(
        "Library created",
        extra={"operation": "library_create", "resource": "library", "lib_id": library.id},
    )
    return library


@router.get("/library", response_model=List[LibraryRead])
def list_libraries(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    return list_records(db, Library, skip, limit)


@router.get("/library/{lib_id}", response_model=LibraryRead)
def get_library(
    lib_id: int,
    db: Session = Depends(get_db),
):
    return get_record(db, Library, lib_id, "Library")


@router.put("/library/{lib_id}", response_model=LibraryRead)
def update_library(
    lib_id: int,
    payload: LibraryUpdate,
    db: Session = Depends(get_db),
):
    library = get_record(db, Library, lib_id, "Library")
    return update_record(db, library, payload.model_dump(exclude_unset=True, exclude_none=True))


@router.delete("/library/{lib_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_library(
    lib_id: int,
    db: Session = Depends(get_db),
):
    library = get_record(db, Library, lib_id, "Library")

    # users and books point at the library; refuse to orphan them
    has_users = db.query(User).filter(User.lib_id == lib_id).first() is not None
    has_books = db.query(BookInventory).filter(BookInventory.lib_id == lib_id).first() is not None
    if has_users or has_books:
        raise ConflictError("Library still has users or books")

    delete_record(db, library)
    logger.info(
        "Library deleted",
        extra={"operation": "library_delete", "resource": "library", "lib_id": lib_id},
    )
    return None


# ---- Users ----
@router.post("/users", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
):
    existing = db.query(User).filter(User.email == payload.email).first()
    if existing:
        raise ConflictError("Email already registered")

    ensure_library_exists(db, payload.lib_id)

    user = create_record(
        db,
        User(
            name=payload.name,
            email=payload.email,
            contact=payload.contact,
            role=payload.role,
            lib_id=payload.lib_id,
            hashed_password=hash_password(payload.password),
        ),
    )
    logger.info(
        "User created",
        extra={
            "operation": "user_create",
            "resource": "user",
            "created_user_id": user.id,
            "role": user.role.value,
            "lib_id": user.lib_id,
        },
    )
    return user


@router.get("/users", response_model=List[UserRead])
def list_users(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    return list_records(db, User, skip, limit)


@router.get("/users/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
):
    return get_record(db, User, user_id, "User")


@router.put("/users/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
):
    user = get_record(db, User, user_id, "User")

    update_data = payload.model_dump(exclude_unset=True, exclude_none=True)
    new_password = update_data.pop("new_password", None)

    if "lib_id" in update_data:
        ensure_library_exists(db, update_data["lib_id"])

    if new_password:
        update_data["hashed_password"] = hash_password(new_password)

    user = update_record(db, user, update_data)
    logger.info(
        "User updated",
        extra={
            "operation": "user_update",
            "resource": "user",
            "updated_user_id": user.id,
            "fields": sorted(k for k in update_data if k != "hashed_password"),
        },
    )
    return user


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
):
    user = get_record(db, User, user_id, "User")

    # protect the bootstrap owner
    if user.email == settings.DEFAULT_OWNER_EMAIL:
        raise ValidationError("Default owner cannot be deleted")

    # open requests and loans point at the reader; refuse to orphan them
    has_pending = (
        db.query(RequestEvent)
        .filter(RequestEvent.reader_id == user_id, RequestEvent.status == RequestStatus.PENDING)
        .first()
        is not None
    )
    has_loans = (
        db.query(IssueRegistry)
        .filter(IssueRegistry.reader_id == user_id, IssueRegistry.issue_status.in_(ACTIVE_ISSUE_STATUSES))
        .first()
        is not None
    )
    if has_pending or has_loans:
        raise ConflictError("User has pending requests or books on loan")

    delete_record(db, user)
    logger.info(
        "User deleted",
        extra={"operation": "user_delete", "resource": "user", "deleted_user_id": user_id},
    )
    return None
