"""SQLAlchemy repository implementations."""

from chainfolio.repositories.sqlalchemy.database import (
    get_engine,
    get_session_factory,
    init_db_with_url,
    reset_database,
    Base,
)
from chainfolio.repositories.sqlalchemy.status_repo import SqlAlchemyStatusStore

__all__ = [
    "get_engine",
    "get_session_factory",
    "init_db_with_url",
    "reset_database",
    "Base",
    "SqlAlchemyStatusStore",
]
