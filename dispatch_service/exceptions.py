class DispatchError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DispatchError):
    """Malformed or missing request fields."""

    status_code = 400

    def __init__(self, message: str, details: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFound(DispatchError):
    """A referenced row does not exist."""

    status_code = 404


class StoreError(DispatchError):
    """A database operation failed. The message shown to clients stays generic."""

    status_code = 500
