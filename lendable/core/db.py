import logging
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from lendable.configs import DB_URI, DEBUG
from lendable.core.exceptions import LendableError, DatabaseError

logger = logging.getLogger(__name__)
# Only use client_encoding for PostgreSQL, not SQLite
engine_kwargs = {'echo': DEBUG}
if DB_URI.startswith('sqlite'):
    # in-memory databases must share one connection across threads
    engine_kwargs['connect_args'] = {'check_same_thread': False}
    engine_kwargs['poolclass'] = StaticPool
else:
    engine_kwargs['client_encoding'] = 'utf8'
    engine_kwargs['pool_pre_ping'] = True
engine = create_engine(DB_URI, **engine_kwargs)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
session = scoped_session(SessionLocal)


class LendableBase:
    @classmethod
    def get(cls, id, db=None):
        return (db if db is not None else session).get(cls, id)


Base = declarative_base(cls=LendableBase)


def get_db():
    """Yields a session per request, for use as a FastAPI dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db=None):
    """Commits the work done inside the block, or rolls all of it back.

    Domain errors are re-raised untouched; driver and connection errors
    surface as `DatabaseError` so callers can retry the whole operation.
    """
    db = db if db is not None else session
    try:
        yield db
        db.commit()
    except LendableError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Transaction rolled back: {e}")
        raise DatabaseError(f"Database operation failed: {str(e)}.") from e
    except Exception:
        db.rollback()
        raise


def init(bind=None):
    from lendable.core import models  # noqa: F401
    try:
        Base.metadata.create_all(bind=bind or engine)
        return session
    except Exception as e:
        logger.warning(f"[WARNING] Database initialization failed: {e}")
