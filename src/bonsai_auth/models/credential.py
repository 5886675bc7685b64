# src/bonsai_auth/models/credential.py
"""SQLAlchemy model for stored password credentials."""

from __future__ import annotations

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from bonsai_auth.db.session import Base


class Credential(Base):
    """Password hash keyed by the user's identity (email)."""

    __tablename__ = "credentials"

    identity: Mapped[str] = mapped_column(Text, primary_key=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
