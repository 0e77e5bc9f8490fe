"""Service-layer exceptions.

Services raise these; routers never catch them. The exception handlers
registered in ``minishop.main`` translate each kind into an HTTP status.
"""

from typing import Any


class ShopError(Exception):
    """Base class for every error raised by the repository and service layers."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ShopError):
    """Bad input or a broken referential invariant (e.g. unknown category)."""


class NotFoundError(ShopError):
    """The operation targets an id that does not exist."""

    def __init__(self, entity_type: str, entity_id: int) -> None:
        super().__init__(
            f"{entity_type} with ID {entity_id} not found",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )


class ConflictError(ShopError):
    """A uniqueness or optimistic-concurrency check failed."""


class AuthenticationError(ShopError):
    """Credentials or bearer token were rejected."""


class StorageError(ShopError):
    """The database rejected or failed a write."""


class ConfigurationError(ShopError):
    """Required configuration is missing; raised at startup."""
