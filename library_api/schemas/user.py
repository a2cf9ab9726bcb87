from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from library_api.db.models import UserRole


def _normalize_role(value):
    # roles are matched case-insensitively ("Admin" == "admin")
    if isinstance(value, str):
        return value.strip().lower()
    return value


class UserBase(BaseModel):
    name: str
    email: str
    contact: Optional[str] = None
    role: UserRole
    lib_id: int


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    contact: Optional[str] = None
    password: str = Field(min_length=1)
    role: UserRole
    lib_id: int

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        return _normalize_role(value)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    contact: Optional[str] = None
    role: Optional[UserRole] = None
    lib_id: Optional[int] = None
    new_password: Optional[str] = Field(default=None, min_length=1)

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        return _normalize_role(value)


class UserRead(UserBase):
    id: int

    class Config:
        from_attributes = True
