# tests/conftest.py
from __future__ import annotations

import asyncio
import os
from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# Keep the app on its process-local collaborators regardless of the shell env.
os.environ["UPSTASH_REDIS_URL"] = ""
os.environ["DATABASE_URL"] = ""
os.environ["SMTP_HOST"] = ""

from bonsai_auth.main import app as fastapi_app
from bonsai_auth.services.auth_flow import AuthFlowController
from bonsai_auth.services.challenge_store import InMemoryChallengeStore
from bonsai_auth.services.credential_store import InMemoryCredentialStore

# Cheapest cost factor bcrypt accepts; keeps hashing fast in tests.
TEST_BCRYPT_ROUNDS = 4


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier:
    """Notifier that remembers every code it was asked to deliver."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send_otp(self, identity: str, code: str) -> None:
        # Yield like a real transport so concurrent requests interleave.
        await asyncio.sleep(0)
        if self.fail:
            raise ConnectionError("SMTP server unreachable")
        self.sent.append((identity, code))

    def last_code(self, identity: str) -> str:
        for sent_to, code in reversed(self.sent):
            if sent_to == identity:
                return code
        raise AssertionError(f"no OTP was sent to {identity}")


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture()
def challenge_store(clock: FakeClock) -> InMemoryChallengeStore:
    return InMemoryChallengeStore(clock=clock)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def auth_flow(
    credential_store: InMemoryCredentialStore,
    challenge_store: InMemoryChallengeStore,
    notifier: RecordingNotifier,
) -> AuthFlowController:
    """Controller with the default OTP policy over in-memory stores."""
    return AuthFlowController(
        credential_store,
        challenge_store,
        notifier,
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
    )


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def client(app: FastAPI, auth_flow: AuthFlowController) -> Iterator[TestClient]:
    """TestClient whose requests go through the `auth_flow` fixture."""
    with TestClient(app, base_url="http://test") as test_client:
        app.state.auth_flow = auth_flow
        yield test_client
