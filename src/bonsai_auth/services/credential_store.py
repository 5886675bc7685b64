"""Durable mapping of identity to password hash."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from threading import Lock
from typing import Protocol, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from bonsai_auth.core.settings import Settings
from bonsai_auth.db.session import create_db_engine, create_session_factory, create_tables
from bonsai_auth.models import Credential
from bonsai_auth.services.errors import StoreUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CredentialStore(Protocol):
    """Contract shared by every credential backend.

    The store does not enforce uniqueness: `create` on an existing identity
    overwrites the stored hash.
    """

    async def exists(self, identity: str) -> bool: ...

    async def create(self, identity: str, password_hash: str) -> None: ...

    async def get_password_hash(self, identity: str) -> str | None: ...

    async def close(self) -> None: ...


class InMemoryCredentialStore:
    """Process-local credential store guarded by a per-instance lock."""

    def __init__(self) -> None:
        self._hashes: dict[str, str] = {}
        self._lock = Lock()

    async def exists(self, identity: str) -> bool:
        with self._lock:
            return identity in self._hashes

    async def create(self, identity: str, password_hash: str) -> None:
        with self._lock:
            self._hashes[identity] = password_hash

    async def get_password_hash(self, identity: str) -> str | None:
        with self._lock:
            return self._hashes.get(identity)

    async def close(self) -> None:
        return None


class SqlCredentialStore:
    """Credential store persisted through SQLAlchemy.

    Session work is blocking, so every operation runs in a worker thread.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str, *, echo: bool = False) -> SqlCredentialStore:
        """Create a store for `database_url`, creating the table if needed."""
        engine = create_db_engine(database_url, echo=echo)
        create_tables(engine)
        return cls(create_session_factory(engine))

    async def exists(self, identity: str) -> bool:
        return await self._run("exists", self._exists_sync, identity)

    async def create(self, identity: str, password_hash: str) -> None:
        await self._run("create", self._create_sync, identity, password_hash)

    async def get_password_hash(self, identity: str) -> str | None:
        return await self._run("get_password_hash", self._get_hash_sync, identity)

    async def close(self) -> None:
        bind = self._session_factory.kw.get("bind")
        if bind is not None:
            await asyncio.to_thread(bind.dispose)

    async def _run(self, operation: str, func: Callable[..., T], *args: object) -> T:
        try:
            return await asyncio.to_thread(func, *args)
        except SQLAlchemyError as exc:
            logger.error("Credential store %s failed: %s", operation, exc)
            raise StoreUnavailable(f"credential store {operation} failed") from exc

    def _exists_sync(self, identity: str) -> bool:
        with self._session_factory() as db:
            return db.get(Credential, identity) is not None

    def _create_sync(self, identity: str, password_hash: str) -> None:
        with self._session_factory() as db:
            db.merge(Credential(identity=identity, password_hash=password_hash))
            try:
                db.commit()
            except IntegrityError:
                # A concurrent create inserted the row after merge looked it up.
                db.rollback()
                db.execute(
                    update(Credential)
                    .where(Credential.identity == identity)
                    .values(password_hash=password_hash)
                )
                db.commit()

    def _get_hash_sync(self, identity: str) -> str | None:
        with self._session_factory() as db:
            record = db.get(Credential, identity)
            return record.password_hash if record is not None else None


def build_credential_store(config: Settings) -> CredentialStore:
    """Select the credential backend once, based on configuration presence."""
    if config.database_url:
        logger.info("Using SQL credential store")
        try:
            return SqlCredentialStore.from_url(config.database_url, echo=config.sql_debug)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("credential database unreachable") from exc
    logger.info("DATABASE_URL not set - using in-memory credential store")
    return InMemoryCredentialStore()
