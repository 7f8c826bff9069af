from typing import Generator

from sqlalchemy.orm import Session

from app.core.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function that provides a request-scoped database session.

    Work left uncommitted when the request fails is rolled back before the
    session goes back to the pool.

    Yields:
        Session: SQLAlchemy database session
    """
    db: Session = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
