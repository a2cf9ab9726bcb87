from typing import Generator

from sqlalchemy.orm import Session

from library_api.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    One database session per request, always closed afterwards.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
