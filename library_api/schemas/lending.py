from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from library_api.db.models import IssueStatus, RequestStatus, RequestType
from library_api.schemas.user import UserRead


class RequestCreate(BaseModel):
    book_id: str = Field(min_length=1)
    request_type: RequestType = RequestType.BORROW


class RequestAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class RequestDecision(BaseModel):
    action: RequestAction = RequestAction.APPROVE


class RequestRead(BaseModel):
    req_id: int
    book_id: str
    reader_id: int
    request_date: datetime
    approval_date: Optional[datetime] = None
    approver_id: Optional[int] = None
    request_type: RequestType
    status: RequestStatus

    class Config:
        from_attributes = True


class IssueRead(BaseModel):
    issue_id: int
    isbn: str
    reader_id: int
    issue_approver_id: int
    issue_status: IssueStatus
    issue_date: datetime
    expected_return_date: datetime
    return_date: Optional[datetime] = None
    return_approver_id: Optional[int] = None

    class Config:
        from_attributes = True


class RequestDecisionResult(BaseModel):
    request: RequestRead
    issue: Optional[IssueRead] = None


class ReaderDetail(BaseModel):
    reader: UserRead
    requests: List[RequestRead] = []
    issues: List[IssueRead] = []
