from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class NotAuthenticatedError(AppError):
    pass


class TransportError(AppError):
    pass


class ValidationError(AppError):
    pass


class ApiError(AppError):
    """Non-success answer from the request/response API."""

    def __init__(self, detail: str = "", status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(detail)
