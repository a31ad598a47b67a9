from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when user input fails validation."""


class TransportUnavailableError(UserError):
    """Raised when the document store cannot be reached."""

    def __init__(self, message: str = "Document store is unavailable") -> None:
        super().__init__(message)


class WriteError(UserError):
    """Raised when a write to the document store fails.

    Carries the transport error code so it can be shown to the user.
    Writes are never retried automatically.
    """

    def __init__(self, message: str, code: str = "unknown") -> None:
        super().__init__(f"{message} (code: {code})")
        self.code = code


class StaleOverwriteError(UserError):
    """Raised when a save is based on an outdated revision of a project."""


class AccessCodeMissingError(UserError):
    """Raised when a request does not name a workspace."""

    def __init__(self, message: str = "Access code required") -> None:
        super().__init__(message)
