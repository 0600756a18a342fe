"""Application error types. Each carries the HTTP status the edge answers with."""


class AppError(Exception):
    """Base class for errors surfaced to API clients as {"detail": message}."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(AppError):
    """Missing, malformed or unverifiable bearer token."""
    status_code = 401


class PremiumRequiredError(AppError):
    status_code = 403

    def __init__(self, message: str = "Premium subscription required"):
        super().__init__(message)


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ValidationError(AppError):
    status_code = 400


class UpstreamProviderError(AppError):
    """Completion, image generation or storage provider failure."""
    status_code = 502
