"""
Domain exceptions raised by the service layer.

Each carries the HTTP status it maps to; ``printshop.main`` renders them
with the common error envelope. None of them are retried.
"""


class PrintShopError(Exception):
    """Base class for print shop errors."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(PrintShopError):
    """Request was well-formed but breaks a business rule."""
    status_code = 400


class AuthenticationFailed(PrintShopError):
    """Missing, expired or invalid credentials."""
    status_code = 401


class BranchMismatch(PrintShopError):
    """Acting branch does not own the record."""
    status_code = 403


class NotFound(PrintShopError):
    status_code = 404


class Conflict(PrintShopError):
    """Uniqueness or single-instance rule violated."""
    status_code = 409


class ReportTimeout(PrintShopError):
    status_code = 504
