"""Repository layer - data access abstractions and implementations."""

from chainfolio.repositories.protocols import StatusStore

__all__ = [
    "StatusStore",
]
