from typing import Optional

from pydantic import BaseModel, Field


class BookCreate(BaseModel):
    isbn: str = Field(min_length=1, max_length=20)
    lib_id: int
    title: str = Field(min_length=1)
    authors: Optional[str] = None
    publisher: Optional[str] = None
    version: Optional[str] = None
    total_copies: int = Field(ge=0)
    available_copies: Optional[int] = Field(default=None, ge=0)  # defaults to total_copies


class BookUpdate(BaseModel):
    lib_id: Optional[int] = None
    title: Optional[str] = Field(default=None, min_length=1)
    authors: Optional[str] = None
    publisher: Optional[str] = None
    version: Optional[str] = None
    total_copies: Optional[int] = Field(default=None, ge=0)
    available_copies: Optional[int] = Field(default=None, ge=0)


class BookRead(BaseModel):
    isbn: str
    lib_id: int
    title: str
    authors: Optional[str] = None
    publisher: Optional[str] = None
    version: Optional[str] = None
    total_copies: int
    available_copies: int

    class Config:
        from_attributes = True
