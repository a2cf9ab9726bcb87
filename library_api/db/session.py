from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from library_api.core.config import settings


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        # one file shared by the request threadpool; writers wait at most
        # DB_TIMEOUT_SECONDS for the lock
        return {
            "connect_args": {
                "check_same_thread": False,
                "timeout": settings.DB_TIMEOUT_SECONDS,
            },
        }
    return {
        "pool_pre_ping": True,
        "pool_timeout": settings.DB_TIMEOUT_SECONDS,
    }


# Engine: the single shared connection pool of the process
engine = create_engine(
    settings.DATABASE_URL,
    future=True,
    **_engine_options(settings.DATABASE_URL),
)

# SessionLocal: what gets injected into the endpoints
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)

# Base: declarative base for the models
Base = declarative_base()
