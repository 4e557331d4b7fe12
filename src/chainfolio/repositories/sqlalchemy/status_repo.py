"""SQLAlchemy implementation of StatusStore."""

from typing import Optional

from sqlalchemy.orm import sessionmaker

from chainfolio.core.exceptions import NotFoundError
from chainfolio.domain.models import JobStatus, StatusKey, StatusRecord
from chainfolio.repositories.sqlalchemy.orm_models import StatusRecordORM


class SqlAlchemyStatusStore:
    """
    SQLAlchemy-backed status store.

    Opens one short-lived session per operation so the worker thread and
    request handlers never share a session. Each put commits on its own.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def put(self, key: str, record: StatusRecord) -> None:
        """Insert or overwrite the record under key."""
        parsed = StatusKey.parse(key)
        value = record.to_json()

        with self._session_factory() as db:
            orm_record = db.get(StatusRecordORM, key)
            if orm_record:
                orm_record.status = record.status.value
                orm_record.value = value
                orm_record.updated_at = record.timestamp
            else:
                db.add(
                    StatusRecordORM(
                        key=key,
                        request_id=parsed.request_id,
                        status=record.status.value,
                        value=value,
                        updated_at=record.timestamp,
                    )
                )
            db.commit()

    def get(self, key: str) -> StatusRecord:
        """Return the decoded record. Raises NotFoundError or ValueError."""
        raw = self.get_raw(key)
        if raw is None:
            raise NotFoundError("Status record", key)
        return StatusRecord.from_json(raw)

    def get_raw(self, key: str) -> Optional[str]:
        with self._session_factory() as db:
            orm_record = db.get(StatusRecordORM, key)
            return orm_record.value if orm_record else None

    def list_keys(self, prefix: str) -> list[str]:
        """List keys with the given prefix in lexicographic order."""
        with self._session_factory() as db:
            rows = (
                db.query(StatusRecordORM.key)
                .filter(StatusRecordORM.key.startswith(prefix, autoescape=True))
                .order_by(StatusRecordORM.key)
                .all()
            )
        # LIKE is case-insensitive on SQLite; keep the match exact
        return [row.key for row in rows if row.key.startswith(prefix)]

    def find_key_by_request_id(self, request_id: str) -> Optional[str]:
        with self._session_factory() as db:
            row = (
                db.query(StatusRecordORM.key)
                .filter(StatusRecordORM.request_id == request_id)
                .order_by(StatusRecordORM.key.desc())
                .first()
            )
        return row.key if row else None

    def list_by_status(self, status: JobStatus) -> list[str]:
        with self._session_factory() as db:
            rows = (
                db.query(StatusRecordORM.key)
                .filter(StatusRecordORM.status == status.value)
                .order_by(StatusRecordORM.key)
                .all()
            )
        return [row.key for row in rows]
