"""Authentication request and response schemas."""

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """Schema for password registration."""

    email: str = Field(..., min_length=1, max_length=320, description="User identity (email)")
    password: str = Field(..., min_length=1, description="Plain-text password")


class EmailRequest(BaseModel):
    """Schema for requesting a one-time passcode."""

    email: str = Field(..., min_length=1, max_length=320, description="User identity (email)")


class LoginRequest(BaseModel):
    """Schema for login with either a password or a one-time passcode.

    When both are present the password is checked and the OTP is ignored.
    """

    email: str = Field(..., min_length=1, max_length=320, description="User identity (email)")
    password: str | None = Field(None, description="Plain-text password")
    otp: str | None = Field(None, description="6-digit one-time passcode")


class OkResponse(BaseModel):
    """Generic success acknowledgement."""

    ok: bool = Field(True, description="Always true on success")


class LoginResponse(OkResponse):
    """Response returned after a successful login."""

    token: str = Field(..., description="Opaque credential proof")


class ErrorResponse(BaseModel):
    """Error payload returned for every authentication failure."""

    error: str = Field(..., description="Machine-readable error code")
