"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class QbitRenamerError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(QbitRenamerError):
    """Raised for issues related to configuration loading or validation."""


class ValidationError(QbitRenamerError):
    """Raised when request input is malformed or out of bounds."""


class InvalidPathError(QbitRenamerError):
    """Raised when a path is empty, not a string, or empty after sanitization."""


class AuthenticationError(QbitRenamerError):
    """Raised when the daemon rejects the credentials or login attempts run out."""


class NotFoundError(QbitRenamerError):
    """Raised when the daemon reports no files or no save path for a torrent."""


class NoValidInputError(QbitRenamerError):
    """Raised when nothing usable is left after sanitizing and filtering input."""


class OperationTimeoutError(QbitRenamerError):
    """
    Raised when a daemon call, the renaming tool, or a whole request exceeds
    its time bound. Safe to retry.
    """


class ExternalToolError(QbitRenamerError):
    """
    Raised when the renaming tool cannot be started or exits with a non-zero
    status. The message is generic; details stay in the server log.
    """
