import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from core.config import Settings
from core.errors import UpstreamError

logger = logging.getLogger(__name__)


def create_db_engine(settings: Settings) -> Engine:
    return create_engine(
        settings.SQLALCHEMY_DATABASE_URI,
        pool_pre_ping=True,
        pool_recycle=3600,
        future=True,
    )


def make_session_factory(engine: Engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def check_connection(engine: Engine):
    """Fail fast when the relational store is unreachable."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise UpstreamError(f"database unavailable: {exc}") from exc


@contextmanager
def session_scope(factory):
    db = factory()
    try:
        yield db
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("database error: %s", exc)
        raise UpstreamError(str(exc)) from exc
    finally:
        db.close()
