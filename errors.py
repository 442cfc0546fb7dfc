"""
Error types raised by the store and services.

Each error carries the HTTP status the API layer answers with.
"""


class PortfolioError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(PortfolioError):
    """Caller input fails a required-field rule."""

    status_code = 400


class NotFound(PortfolioError):
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class Forbidden(PortfolioError):
    status_code = 403

    def __init__(self, message: str = "Forbidden: invalid admin key"):
        super().__init__(message)


class StorageUnavailable(PortfolioError):
    """The document file cannot be read or written."""

    status_code = 500
