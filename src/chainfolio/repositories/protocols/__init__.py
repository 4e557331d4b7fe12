"""Repository protocol definitions (interfaces)."""

from chainfolio.repositories.protocols.status_repo import StatusStore

__all__ = [
    "StatusStore",
]
