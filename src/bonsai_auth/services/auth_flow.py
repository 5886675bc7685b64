"""Registration, OTP issuance and login orchestration.

`AuthFlowController` holds no per-identity state of its own. Every decision
re-reads the credential and challenge stores, so concurrent requests for the
same identity are resolved at the store layer:

- two racing `register` calls may both pass the existence check; the later
  `create` wins.
- two racing `request_otp` calls both count toward the rate limit; the last
  stored code wins.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Final, Literal

from bonsai_auth.core.security import (
    generate_otp_code,
    hash_password,
    issue_credential_token,
    otp_matches,
    verify_password,
)
from bonsai_auth.core.settings import Settings
from bonsai_auth.services.challenge_store import ChallengeStore
from bonsai_auth.services.credential_store import CredentialStore
from bonsai_auth.services.errors import (
    AlreadyExists,
    DeliveryFailed,
    InvalidOtp,
    InvalidPassword,
    MissingCredentials,
    RateLimited,
    UnknownIdentity,
)
from bonsai_auth.services.notifier import OtpNotifier

logger = logging.getLogger(__name__)

OTP_TTL_SECONDS: Final[int] = 300
OTP_REQUEST_WINDOW_SECONDS: Final[int] = 3600
OTP_MAX_REQUESTS: Final[int] = 5


@dataclass(frozen=True)
class CredentialProof:
    """Result of a successful login.

    `token` is an opaque placeholder; no session is attached to it.
    """

    identity: str
    method: Literal["password", "otp"]
    token: str


class AuthFlowController:
    """Orchestrates register, request_otp and login over the two stores."""

    def __init__(
        self,
        credentials: CredentialStore,
        challenges: ChallengeStore,
        notifier: OtpNotifier,
        *,
        otp_ttl_seconds: int = OTP_TTL_SECONDS,
        request_window_seconds: int = OTP_REQUEST_WINDOW_SECONDS,
        max_requests: int = OTP_MAX_REQUESTS,
        otp_delivery_best_effort: bool = True,
        bcrypt_rounds: int = 12,
    ) -> None:
        self._credentials = credentials
        self._challenges = challenges
        self._notifier = notifier
        self.otp_ttl_seconds = otp_ttl_seconds
        self.request_window_seconds = request_window_seconds
        self.max_requests = max_requests
        self.otp_delivery_best_effort = otp_delivery_best_effort
        self.bcrypt_rounds = bcrypt_rounds

    @classmethod
    def from_settings(
        cls,
        config: Settings,
        credentials: CredentialStore,
        challenges: ChallengeStore,
        notifier: OtpNotifier,
    ) -> AuthFlowController:
        return cls(
            credentials,
            challenges,
            notifier,
            otp_ttl_seconds=config.otp_ttl_seconds,
            request_window_seconds=config.otp_request_window_seconds,
            max_requests=config.otp_max_requests,
            otp_delivery_best_effort=config.otp_delivery_best_effort,
            bcrypt_rounds=config.bcrypt_rounds,
        )

    async def register(self, identity: str, password: str) -> None:
        """Create a password credential for a new identity.

        Raises:
            AlreadyExists: The identity already has a credential record.
            StoreUnavailable: The credential backend failed.
        """
        if await self._credentials.exists(identity):
            logger.warning("register_fail %s", identity)
            raise AlreadyExists(f"identity {identity!r} is already registered")

        password_hash = await asyncio.to_thread(hash_password, password, self.bcrypt_rounds)
        await self._credentials.create(identity, password_hash)
        logger.info("register_success %s", identity)

    async def request_otp(self, identity: str) -> None:
        """Issue a fresh OTP for a registered identity and deliver it.

        Every call counts toward the rate limit, including rejected ones.

        Raises:
            UnknownIdentity: The identity was never registered.
            RateLimited: Too many requests in the current window.
            DeliveryFailed: Delivery failed and best-effort delivery is off.
            StoreUnavailable: A storage backend failed.
        """
        if not await self._credentials.exists(identity):
            logger.warning("otp_request_fail_unknown_user %s", identity)
            raise UnknownIdentity(f"identity {identity!r} is not registered")

        count = await self._challenges.increment_request_count(
            identity, self.request_window_seconds
        )
        if count > self.max_requests:
            logger.warning("otp_rate_limited %s count=%d", identity, count)
            raise RateLimited(count)

        code = generate_otp_code()
        await self._challenges.set_otp(identity, code, self.otp_ttl_seconds)
        await self._deliver(identity, code)

    async def login(
        self,
        identity: str,
        password: str | None = None,
        otp: str | None = None,
    ) -> CredentialProof:
        """Verify a password or an OTP and return a credential proof.

        A non-empty password always takes precedence; a wrong password never
        falls back to the OTP path.

        Raises:
            UnknownIdentity: The identity was never registered.
            InvalidPassword: The password does not match.
            InvalidOtp: The OTP is wrong, expired or already used.
            MissingCredentials: Neither password nor OTP was supplied.
            StoreUnavailable: A storage backend failed.
        """
        password_hash = await self._credentials.get_password_hash(identity)
        if password_hash is None:
            logger.warning("login_fail_unknown_user %s", identity)
            raise UnknownIdentity(f"identity {identity!r} is not registered")

        if password:
            matched = await asyncio.to_thread(verify_password, password, password_hash)
            if not matched:
                logger.warning("failed_login_password %s", identity)
                raise InvalidPassword("password does not match")
            method: Literal["password", "otp"] = "password"
        elif otp:
            expected = await self._challenges.get_otp(identity)
            if not otp_matches(expected, otp):
                logger.warning("failed_login_otp %s", identity)
                raise InvalidOtp("one-time passcode is invalid or expired")
            await self._challenges.delete_otp(identity)
            method = "otp"
        else:
            logger.warning("login_fail_missing_credentials %s", identity)
            raise MissingCredentials("password or otp is required")

        logger.info("login_success %s method=%s", identity, method)
        return CredentialProof(identity=identity, method=method, token=issue_credential_token())

    async def _deliver(self, identity: str, code: str) -> None:
        try:
            await self._notifier.send_otp(identity, code)
        except Exception as exc:
            if not self.otp_delivery_best_effort:
                logger.error("otp_delivery_failed %s: %s", identity, exc)
                raise DeliveryFailed("could not deliver one-time passcode") from exc
            logger.exception("otp_delivery_failed %s (ignored, best-effort delivery)", identity)
            return
        logger.info("otp_sent %s", identity)
