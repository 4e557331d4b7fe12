"""SQLAlchemy ORM model definitions."""

from sqlalchemy import BigInteger, Column, String, Text

from chainfolio.repositories.sqlalchemy.database import Base


class StatusRecordORM(Base):
    """
    SQLAlchemy model for a status record.

    value holds the JSON object {status, data?, error?, timestamp}; status and
    request_id are duplicated into indexed columns for lookups.
    """

    __tablename__ = "status_records"

    key = Column(String(255), primary_key=True)
    request_id = Column(String(64), nullable=False, index=True)
    status = Column(String(16), nullable=False, index=True)
    value = Column(Text, nullable=False)
    updated_at = Column(BigInteger, nullable=False)
