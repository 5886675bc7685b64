"""Bonsai Auth: password and one-time passcode authentication service."""

__version__ = "1.0.0"
