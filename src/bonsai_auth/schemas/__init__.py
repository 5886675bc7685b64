# src/bonsai_auth/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .auth import EmailRequest, ErrorResponse, LoginRequest, LoginResponse, OkResponse, RegisterRequest

__all__ = [
    "EmailRequest",
    "ErrorResponse",
    "LoginRequest",
    "LoginResponse",
    "OkResponse",
    "RegisterRequest",
]
