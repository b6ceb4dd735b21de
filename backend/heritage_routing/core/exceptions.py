from __future__ import annotations


class AppError(Exception):
    def __init__(self, code: str, message: str, status_code: int = 400, details: dict | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class NotFoundError(AppError):
    def __init__(self, message: str = "Resource not found", details: dict | None = None) -> None:
        super().__init__(code="not_found", message=message, status_code=404, details=details)


class ValidationAppError(AppError):
    def __init__(self, message: str = "Validation failed", details: dict | None = None) -> None:
        super().__init__(code="validation_error", message=message, status_code=422, details=details)


class RouteUnavailableError(Exception):
    """A routing tier could not produce a route.

    Raised while talking to a tier and converted into an absent result by
    the provider itself; it never leaves the routing service.
    """

    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    SERVICE_STATUS = "service_status"
    NO_ROUTES = "no_routes"

    def __init__(self, tier: str, reason: str, detail: str = "") -> None:
        super().__init__(f"{tier}: {reason} {detail}".strip())
        self.tier = tier
        self.reason = reason
        self.detail = detail
