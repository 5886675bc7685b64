# src/bonsai_auth/models/__init__.py
"""SQLAlchemy models for the Bonsai Auth service."""

from .credential import Credential

__all__ = ["Credential"]
