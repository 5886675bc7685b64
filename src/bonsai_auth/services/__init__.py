# src/bonsai_auth/services/__init__.py
"""Authentication core services for the Bonsai Auth application."""

from .auth_flow import AuthFlowController, CredentialProof
from .challenge_store import InMemoryChallengeStore, RedisChallengeStore, build_challenge_store
from .credential_store import InMemoryCredentialStore, SqlCredentialStore, build_credential_store
from .notifier import ConsoleOtpNotifier, SmtpOtpNotifier, build_notifier

__all__ = [
    "AuthFlowController",
    "CredentialProof",
    "InMemoryChallengeStore",
    "RedisChallengeStore",
    "build_challenge_store",
    "InMemoryCredentialStore",
    "SqlCredentialStore",
    "build_credential_store",
    "ConsoleOtpNotifier",
    "SmtpOtpNotifier",
    "build_notifier",
]
