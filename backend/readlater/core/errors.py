"""Error taxonomy shared by the stores, the API and the client."""

from __future__ import annotations

from typing import Any


class ReadLaterError(Exception):
    """Base class for domain errors."""

    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class NotFoundError(ReadLaterError):
    """Referenced record is missing or owned by another user."""

    status_code = 404

    def __init__(self, entity: str, record_id: str | None = None) -> None:
        super().__init__(f"{entity} not found", details={"id": record_id} if record_id else None)
        self.entity = entity
        self.record_id = record_id
        self.error = f"{entity} not found"


class ValidationError(ReadLaterError):
    status_code = 400
    error = "Validation Error"


class DuplicateIdentityError(ReadLaterError):
    """A write would violate the one-article-per-(user, url) invariant."""

    status_code = 409
    error = "Duplicate Error"


class AnchorError(ReadLaterError):
    """A selection cannot be expressed as, or recovered from, a node path."""

    status_code = 422
    error = "Anchor Error"


class EmptySelectionError(AnchorError):
    pass


class ResolutionFailure(AnchorError):
    """A stored path no longer matches the structure of the document."""

    def __init__(self, message: str, path: list[int] | None = None, depth: int | None = None) -> None:
        super().__init__(message, details={"path": path, "depth": depth} if path is not None else None)
        self.path = path
        self.depth = depth


class ClientError(ReadLaterError):
    """Transport or HTTP failure talking to the API from the client side."""

    error = "Client Error"

    def __init__(self, message: str, status_code: int | None = None, details: Any = None) -> None:
        super().__init__(message, details=details)
        self.http_status = status_code


__all__ = [
    "ReadLaterError",
    "NotFoundError",
    "ValidationError",
    "DuplicateIdentityError",
    "AnchorError",
    "EmptySelectionError",
    "ResolutionFailure",
    "ClientError",
]
