import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.exceptions import StoreError

logger = logging.getLogger(__name__)


def build_engine(database_url: str, echo: bool = False):
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for the duration of a request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """
    Run a block as one transaction.

    Commits when the block succeeds and rolls back on any exception.
    Database failures are re-raised as StoreError; domain errors propagate
    unchanged.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database operation failed, transaction rolled back: {str(e)}", exc_info=True)
        raise StoreError("The database could not complete the operation. Please try again.") from e
    except Exception:
        db.rollback()
        raise


def create_db_and_tables(bind=None):
    # Registers every model on Base.metadata
    import app.database.base  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
