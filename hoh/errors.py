"""
Domain error taxonomy
Services raise these; main.py renders them as {"success": false, "message": ...}
"""


class DomainError(Exception):
    """Base class for errors that map onto an HTTP status"""

    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DomainError):
    status_code = 400
    default_message = "Invalid request data"


class NotFoundError(DomainError):
    status_code = 404
    default_message = "Resource not found"


class ForbiddenError(DomainError):
    status_code = 403
    default_message = "You are not allowed to perform this action"


class AccessDeniedError(ForbiddenError):
    """Raised by the service-type filter; distinct from an empty result"""

    default_message = "Access denied to the requested vertical"


class InvalidStatusError(DomainError):
    default_message = "Invalid status value"


class InvalidTransitionError(DomainError):
    default_message = "Status transition not allowed"


class ProviderIneligibleError(DomainError):
    default_message = "Provider is not eligible for this booking"


class NoOTPRequestedError(DomainError):
    default_message = "No OTP requested for this booking"


class OTPExpiredError(DomainError):
    default_message = "OTP has expired. Please request a new OTP."


class AlreadyVerifiedError(DomainError):
    default_message = "This OTP has already been verified"


class InvalidOTPError(DomainError):
    default_message = "Invalid OTP"


class AlreadyRatedError(DomainError):
    default_message = "This booking has already been rated"


class ConcurrentUpdateError(DomainError):
    status_code = 409
    default_message = "The record was modified by another request. Please retry."


class AuthenticationError(DomainError):
    status_code = 401
    default_message = "Invalid email or password"
