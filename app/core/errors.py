"""Typed failures raised by the services and mapped to HTTP responses in ``app.main``."""

from typing import Any


class AppError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None, *, extra: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        self.extra = extra or {}
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Not authorized to access this route"


class AuthorizationError(AppError):
    status_code = 403
    default_message = "Not allowed to access this route"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class UpstreamError(AppError):
    status_code = 502
    default_message = "Upstream image host failed"


class InternalError(AppError):
    status_code = 500


class InvalidOrExpiredOTP(ValidationError):
    default_message = "Invalid or expired OTP"


class InvalidResetToken(ValidationError):
    default_message = "Invalid or expired reset token"


class NoFileProvided(ValidationError):
    default_message = "Please upload a file"


class PayloadTooLarge(ValidationError):
    status_code = 413
    default_message = "File exceeds max size"


class SelfModificationForbidden(ValidationError):
    pass


class InvalidCredentials(AuthenticationError):
    default_message = "Invalid credentials"


class UnverifiedAccount(AuthenticationError):
    default_message = "Please verify your email first. A new OTP has been sent to your email."


class TokenInvalid(AuthenticationError):
    pass


class TokenExpired(AuthenticationError):
    pass


class InvalidKey(AuthenticationError):
    default_message = "Invalid or expired API key"


class DuplicateEmail(ConflictError):
    default_message = "User already exists"


class QuotaExceeded(ConflictError):
    status_code = 400


class KeyLimitReached(ConflictError):
    status_code = 400


class UpstreamUnavailable(UpstreamError):
    default_message = "Image host is unavailable"


class UpstreamRejected(UpstreamError):
    default_message = "Image host rejected the upload"


class AuditLogError(InternalError):
    default_message = "Action completed but the audit log entry could not be written"
