from typing import Any

from fastapi import status


class AppError(Exception):
    """
    Base class for errors that are turned into structured JSON responses.
    """
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    reason: str = "internal"

    def __init__(self, message: str, *, reason: str | None = None, headers: dict[str, str] | None = None, **extra: Any):
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason
        self.headers = headers
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "reason": self.reason, **self.extra}


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    reason = "validationFailed"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    reason = "conflict"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    reason = "unauthorized"

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(message, **kwargs)


class InvalidCredentials(Unauthorized):
    reason = "invalidCredentials"

    def __init__(self):
        # Same message for unknown email and wrong password
        super().__init__("Invalid credentials")


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    reason = "forbidden"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    reason = "notFound"


class RateLimited(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    reason = "rateLimited"

    def __init__(self, retry_after: int, message: str = "Too many authentication attempts"):
        super().__init__(
            message,
            headers={"Retry-After": str(retry_after)},
            retryAfter=retry_after,
        )
        self.retry_after = retry_after


class InvalidOrExpiredToken(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    reason = "invalidOrExpiredToken"


class EmailDeliveryFailed(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    reason = "emailDeliveryFailed"
