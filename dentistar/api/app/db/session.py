from collections.abc import Generator
from functools import lru_cache

from fastapi import Depends
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import get_settings
from app.core.errors import ConfigurationError
from app.db.gateway import PersistenceGateway


@lru_cache(maxsize=4)
def get_session_factory(database_url: str) -> sessionmaker:
    """Build (once per URL) the engine and session factory."""

    engine = create_engine(database_url, future=True, pool_pre_ping=True)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def get_db() -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""

    database_url = get_settings().database_url
    if not database_url:
        raise ConfigurationError(details="DATABASE_URL is not set")

    db = get_session_factory(database_url)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_gateway(db: Session = Depends(get_db)) -> PersistenceGateway:
    return PersistenceGateway(db)
