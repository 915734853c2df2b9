"""Database session factory and configuration.

Provides database connectivity, session management and the unit-of-work
helper used by every mutating service call.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker, Session

from .config import get_settings
from .domain.errors import ConflictError

DATABASE_URL = get_settings().DATABASE_URL

# Create engine with connection pooling
# Pool settings only apply to PostgreSQL (not SQLite)
_engine_kwargs = {
    "pool_pre_ping": True,  # Verify connections before using
    "echo": False,  # Set to True for SQL query logging
}

# Only add pool settings for non-SQLite databases
if not DATABASE_URL.startswith("sqlite"):
    _engine_kwargs["pool_size"] = 5
    _engine_kwargs["max_overflow"] = 10
else:
    _engine_kwargs["connect_args"] = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, **_engine_kwargs)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.query(Document).all()

    Automatically commits on success, rolls back on exception.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI endpoints.

    Usage:
        @app.get("/documents")
        def list_documents(db: Session = Depends(get_db)):
            return db.query(Document).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Generator[Session, None, None]:
    """Run one logical operation as a single atomic unit of work.

    Flushes and commits when the block exits cleanly. Any exception rolls
    the whole unit back, so multi-row writes (e.g. a promotion's demote
    and promote) land together or not at all. A unique-constraint
    violation surfaces as ConflictError, which callers may retry once.

    Usage:
        with transaction(db):
            collaborator.role = CollaboratorRole.PRIMARY_STUDENT
    """
    try:
        yield db
        db.flush()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            "Concurrent modification detected, please retry",
            details={"constraint": str(getattr(exc, "orig", exc))},
        ) from exc
    except Exception:
        db.rollback()
        raise
