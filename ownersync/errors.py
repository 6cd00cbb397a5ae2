"""
Error taxonomy for contract ownership synchronization.

Everything raised below the sync boundary derives from SyncError, so a
run can report a single failure without catching programming errors.
"""

from typing import Any, Optional


class SyncError(Exception):
    """Base exception for all synchronization errors."""

    def __init__(
        self,
        message: str,
        contract: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.contract = contract
        self.original_error = original_error
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "contract": self.contract,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.contract:
            parts.append(f"[contract={self.contract}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class FeedError(SyncError):
    """The transfer feed cannot make progress for this contract."""


class TransientFetchError(FeedError):
    """A single page request failed; the same page may be requested again."""

    def __init__(
        self,
        message: str,
        contract: Optional[str] = None,
        status_code: Optional[int] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, contract, original_error, context)
        self.status_code = status_code
        self.request_url = request_url

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "request_url": self.request_url,
        })
        return data


class ParseError(SyncError):
    """A raw transfer record could not be decoded."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        contract: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, contract, original_error, context)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({"field": self.field, "value": repr(self.value)})
        return data


class PersistenceError(SyncError):
    """Reading or replacing the stored ownership state failed."""
