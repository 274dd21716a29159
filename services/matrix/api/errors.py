from __future__ import annotations

from typing import Optional


# ======================================================================
# Exceptions
# ======================================================================

class MatrixError(RuntimeError):
    """Base class for errors raised by the Matrix dispatch layer."""


class MatrixCredentialsError(MatrixError):
    """Raised when no usable credentials were supplied."""

    def __init__(self, message: str = "No credentials got returned!") -> None:
        super().__init__(message)


class MatrixCredentialsInvalid(MatrixError):
    """Raised when the homeserver rejects the access token (HTTP 401)."""

    def __init__(self, message: str = "Matrix credentials are not valid!") -> None:
        super().__init__(message)


class MatrixApiError(MatrixError):
    """
    Raised when the homeserver answers with an API-shaped error body,
    e.g. {"errcode": "M_FORBIDDEN", "error": "You are not invited"}.
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        *,
        errcode: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.error = error
        self.errcode = errcode
        super().__init__(f"Matrix error response [{status_code}]: {error}")


class MatrixParameterError(MatrixError):
    """Raised when a required node parameter was not supplied."""


class MatrixBinaryDataError(MatrixError):
    """Raised when an item lacks the requested binary property."""


class MatrixNotImplemented(MatrixError, NotImplementedError):
    """Raised for (resource, operation) pairs without a handler."""

    def __init__(self, message: str = "Not implemented yet") -> None:
        super().__init__(message)
