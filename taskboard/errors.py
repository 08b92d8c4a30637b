from typing import Optional


class PortalError(Exception):
    """Base for errors rendered as a JSON ``{"message", "error"}`` response."""

    status_code = 500

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error = error


class ValidationError(PortalError):
    status_code = 400


class AuthRequiredError(PortalError):
    status_code = 401


class NotFoundError(PortalError):
    status_code = 404


class StoreError(PortalError):
    """Persistence failure. May surface after earlier statements already ran (rolled back)."""

    status_code = 500
