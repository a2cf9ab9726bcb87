from typing import Optional

from pydantic import BaseModel, Field


class LibraryCreate(BaseModel):
    name: str = Field(min_length=1)


class LibraryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)


class LibraryRead(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True
