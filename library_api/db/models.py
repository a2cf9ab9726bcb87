from datetime import datetime
from enum import Enum

from sqlalchemy import (
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from library_api.db.session import Base


# ======================
# Enums
# ======================

class UserRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    READER = "reader"


class RequestType(str, Enum):
    BORROW = "borrow"
    RETURN = "return"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class IssueStatus(str, Enum):
    ISSUED = "issued"
    OVERDUE = "overdue"
    RETURNED = "returned"


# Issues that still hold a copy of the book
ACTIVE_ISSUE_STATUSES = (IssueStatus.ISSUED, IssueStatus.OVERDUE)


# ======================
# Library
# ======================

class Library(Base):
    __tablename__ = "library"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


# ======================
# User
# ======================

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    contact: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[UserRole] = mapped_column(SqlEnum(UserRole), nullable=False, default=UserRole.READER)
    lib_id: Mapped[int] = mapped_column(Integer, ForeignKey("library.id"), nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)


# ======================
# BookInventory
# ======================

class BookInventory(Base):
    __tablename__ = "book_inventory"

    isbn: Mapped[str] = mapped_column(String(20), primary_key=True)
    lib_id: Mapped[int] = mapped_column(Integer, ForeignKey("library.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    authors: Mapped[str | None] = mapped_column(String(255), nullable=True)
    publisher: Mapped[str | None] = mapped_column(String(255), nullable=True)
    version: Mapped[str | None] = mapped_column(String(50), nullable=True)

    total_copies: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    available_copies: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


# ======================
# RequestEvent
# ======================

class RequestEvent(Base):
    __tablename__ = "request_events"

    req_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    book_id: Mapped[str] = mapped_column(String(20), ForeignKey("book_inventory.isbn"), nullable=False)
    reader_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    request_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    approval_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approver_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)

    request_type: Mapped[RequestType] = mapped_column(
        SqlEnum(RequestType),
        nullable=False,
        default=RequestType.BORROW,
    )
    status: Mapped[RequestStatus] = mapped_column(
        SqlEnum(RequestStatus),
        nullable=False,
        default=RequestStatus.PENDING,
    )


# ======================
# IssueRegistry
# ======================

class IssueRegistry(Base):
    __tablename__ = "issue_registry"

    issue_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    isbn: Mapped[str] = mapped_column(String(20), ForeignKey("book_inventory.isbn"), nullable=False, index=True)
    reader_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    issue_approver_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)

    issue_status: Mapped[IssueStatus] = mapped_column(
        SqlEnum(IssueStatus),
        nullable=False,
        default=IssueStatus.ISSUED,
    )
    issue_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expected_return_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    return_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    return_approver_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
