"""Custom exceptions for SynthVerify."""

from typing import Optional


class CurationError(Exception):
    """Base class for failures surfaced by curation operations."""

    retryable: bool = False
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(CurationError):
    """Raised when the backing store is not enabled or configured."""

    status_code = 503


class PersistenceError(CurationError):
    """Raised when a save, fetch or upload against a store fails."""

    retryable = True
    status_code = 502

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class ItemNotFoundError(CurationError):
    """Raised when an item does not exist locally or in the backing store."""

    status_code = 404

    def __init__(self, item_id: str, where: str = "collection"):
        self.item_id = item_id
        self.where = where
        super().__init__(f"Item {item_id} not found in {where}")


class SessionNotFoundError(CurationError):
    """Raised when a curation session record does not exist."""

    status_code = 404

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")
