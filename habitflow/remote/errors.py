"""Errors raised by the remote habit repository."""


class RemoteError(Exception):
    """Base class for failed calls to the habit server."""

    status: int = 0

    def __init__(self, message: str = "", status: int = 0):
        super().__init__(message)
        self.status = status or self.status


class NetworkError(RemoteError):
    """No response: connection failure or timeout."""


class AuthError(RemoteError):
    """The server rejected our credentials (401)."""

    status = 401


class NotFoundError(RemoteError):
    """The habit no longer exists (404)."""

    status = 404


class ValidationError(RemoteError):
    """Malformed date or payload (400)."""

    status = 400
