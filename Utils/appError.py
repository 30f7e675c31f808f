class AppError(Exception):
    kind = "Error"

    def __init__(self, message: str, status_code: int = None, details=None):
        """
        Base exception for errors reported to API callers.

        Args:
            message (str): Human readable error message.
            status_code (int): HTTP status code. Subclasses provide a default.
            details: Optional machine readable payload (e.g. per-field errors).
        """
        super().__init__(message)

        self.status_code = status_code or getattr(self, "default_status", 500)
        self.status = "fail" if str(self.status_code).startswith("4") else "error"
        self.details = details
        self.is_operational = True

    def to_json(self) -> dict:
        body = {
            "success": False,
            "status": self.status,
            "error": self.kind,
            "message": str(self),
        }
        if self.details is not None:
            body["details"] = self.details
        return body


class RequestValidationError(AppError):
    kind = "ValidationError"
    default_status = 400


class InvalidEmailError(AppError):
    kind = "InvalidEmail"
    default_status = 400


class UnauthorizedError(AppError):
    kind = "Unauthorized"
    default_status = 403


class NotVerifiedError(AppError):
    kind = "NotVerified"
    default_status = 403


class NotFoundError(AppError):
    kind = "NotFound"
    default_status = 404


class OtpNotFoundError(NotFoundError):
    """No live code exists for the email (never issued, consumed or overwritten)."""
    default_status = 400


class OtpExpiredError(AppError):
    kind = "Expired"
    default_status = 400


class OtpMismatchError(AppError):
    kind = "Mismatch"
    default_status = 400


class QuotaExceededError(AppError):
    kind = "QuotaExceeded"
    default_status = 429


class StorageError(AppError):
    kind = "StorageError"
    default_status = 500


class DeliveryFailedError(AppError):
    kind = "DeliveryFailed"
    default_status = 502


class ConflictError(AppError):
    kind = "Conflict"
    default_status = 409
