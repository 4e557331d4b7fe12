"""Status store protocol."""

from typing import Protocol, Optional

from chainfolio.domain.models import JobStatus, StatusRecord


class StatusStore(Protocol):
    """Interface for durable status record access, keyed by encoded StatusKey."""

    def put(self, key: str, record: StatusRecord) -> None:
        """Insert or overwrite the record stored under key."""
        ...

    def get(self, key: str) -> StatusRecord:
        """Return the record under key. Raises NotFoundError if absent."""
        ...

    def get_raw(self, key: str) -> Optional[str]:
        """Return the stored JSON value, or None if absent."""
        ...

    def list_keys(self, prefix: str) -> list[str]:
        """List keys starting with prefix, lexicographically ordered."""
        ...

    def find_key_by_request_id(self, request_id: str) -> Optional[str]:
        """Return the key of the record for request_id, if any."""
        ...

    def list_by_status(self, status: JobStatus) -> list[str]:
        """List keys whose record currently has the given status."""
        ...
