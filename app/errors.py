# app/errors.py
"""
Error kinds shared by the services and the transports.
The HTTP layer maps each one to a status code.
"""


class FilesError(Exception):
    """Base exception for file browser operations."""


class AccessDeniedError(FilesError):
    """Raised when a path resolves outside the confined root."""

    def __init__(self, path: str, reason: str = "Path escapes root directory"):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class BadRequestError(FilesError):
    """Raised when a required parameter is missing or malformed."""


class FileIOError(FilesError):
    """Raised when the underlying filesystem operation fails."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class StartupError(FilesError):
    """Raised when the process cannot start serving (no root, port unavailable)."""
