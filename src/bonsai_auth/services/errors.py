"""Exceptions raised by the authentication core.

Every error is terminal for the request that triggered it. The HTTP layer
renders them through a single exception handler using `status_code` and
`error_code`.
"""

from __future__ import annotations


class AuthError(RuntimeError):
    """Base class for all authentication failures."""

    status_code: int = 400
    error_code: str = "auth_error"


class AlreadyExists(AuthError):
    """Raised when registering an identity that already has credentials."""

    status_code = 409
    error_code = "user_exists"


class UnknownIdentity(AuthError):
    """Raised when an operation targets an identity that was never registered."""

    status_code = 400
    error_code = "unknown_user"


class RateLimited(AuthError):
    """Raised when an identity exceeds the OTP request allowance.

    Attributes:
        count: Value of the request counter after the rejected attempt.
    """

    status_code = 429
    error_code = "too_many_requests"

    def __init__(self, count: int) -> None:
        super().__init__(f"OTP request limit exceeded (count={count})")
        self.count = count


class InvalidPassword(AuthError):
    """Raised when the supplied password does not match the stored hash."""

    status_code = 401
    error_code = "invalid_password"


class InvalidOtp(AuthError):
    """Raised when the supplied OTP is wrong, expired, or already consumed."""

    status_code = 401
    error_code = "invalid_otp"


class MissingCredentials(AuthError):
    """Raised when a login supplies neither a password nor an OTP."""

    status_code = 400
    error_code = "missing_credentials"


class StoreUnavailable(AuthError):
    """Raised when a storage backend cannot complete an operation."""

    status_code = 503
    error_code = "store_unavailable"


class DeliveryFailed(AuthError):
    """Raised when OTP delivery fails and delivery is not best-effort."""

    status_code = 502
    error_code = "delivery_failed"
