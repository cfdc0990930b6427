"""
Launcher session: one authenticated engine shared by many applications.

A Session is obtained only through ``create_account`` or ``log_in``. It owns
the engine behind an ``EngineGuard`` and never hands out the raw handle, and
it owns the ``KeyRegistry`` holding one key per attached application.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Generic, TypeVar

from safe_launcher.common.channel import ApplicationChannel
from safe_launcher.common.config import Config
from safe_launcher.common.exceptions import (
    AccountCreationFailed,
    EngineUnavailable,
    LoginFailed,
    ReentrantEngineAccess,
    UnexpectedCollaboratorFailure,
)
from safe_launcher.common.logging_utils import setup_logger

from .engine_guard import EngineGuard
from .key_registry import KeyRegistry

if TYPE_CHECKING:
    from safe_launcher.common.interfaces import IAuthenticator, IEngine, IKeyRegistry
    from safe_launcher.common.models import ApplicationEncryptionKey

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="IEngine")
R = TypeVar("R")

# Only create_account and log_in may construct a Session
_CONSTRUCTION_TOKEN = object()


class Session(Generic[E]):
    """Authenticated launcher session.

    Obtain one through ``create_account`` or ``log_in``; direct construction
    is rejected.
    """

    def __init__(
        self, engine: E, config: Config | None = None, *, _token: object = None
    ) -> None:
        if _token is not _CONSTRUCTION_TOKEN:
            msg = "use Session.create_account or Session.log_in"
            raise TypeError(msg)
        self.config = config or Config()
        setup_logger(logger, self.config.LOG_LEVEL)
        self._guard: EngineGuard[E] = EngineGuard(engine)
        self._registry: IKeyRegistry = KeyRegistry()

    @classmethod
    def create_account(
        cls,
        keyword: str,
        pin: str,
        password: str,
        *,
        authenticator: IAuthenticator,
        config: Config | None = None,
    ) -> Session:
        """Register a new account and return a Session for it.

        Raises:
            AccountCreationFailed: the authenticator rejected the registration;
                ``cause`` is the authenticator's exception, unchanged.
        """
        logger.debug("Registering account with the network...")
        try:
            engine = authenticator.register(keyword, pin, password)
        except Exception as err:
            raise AccountCreationFailed(err) from err
        session = cls._from_engine(engine, config)
        logger.debug("Account registered with the network")
        return session

    @classmethod
    def log_in(
        cls,
        keyword: str,
        pin: str,
        password: str,
        *,
        authenticator: IAuthenticator,
        config: Config | None = None,
    ) -> Session:
        """Log into an existing account and return a Session for it.

        Raises:
            LoginFailed: the authenticator rejected the credentials; ``cause``
                is the authenticator's exception, unchanged.
        """
        logger.debug("Logging in to the network...")
        try:
            engine = authenticator.login(keyword, pin, password)
        except Exception as err:
            raise LoginFailed(err) from err
        session = cls._from_engine(engine, config)
        logger.debug("Logged in to the network")
        return session

    @classmethod
    def _from_engine(cls, engine: E | None, config: Config | None) -> Session:
        if engine is None:
            msg = "authenticator returned no engine handle"
            raise UnexpectedCollaboratorFailure(ValueError(msg))
        return cls(engine, config, _token=_CONSTRUCTION_TOKEN)

    # ------------------------------------------------------------------
    # Guarded engine access
    # ------------------------------------------------------------------

    def with_engine(
        self, operation: Callable[[E], R], timeout: float | None = None
    ) -> R:
        """Run ``operation(engine)`` with exclusive access to the engine.

        The result or exception of ``operation`` is passed through unchanged.
        ``timeout`` defaults to ``config.ENGINE_TIMEOUT``; work that outlives
        it poisons the session's engine.

        Raises:
            EngineUnavailable: the engine is poisoned or the session is closed.
            ReentrantEngineAccess: called from inside another unit of work.
        """
        if timeout is None:
            timeout = self.config.ENGINE_TIMEOUT
        return self._guard.with_engine(operation, timeout=timeout)

    @property
    def engine_available(self) -> bool:
        return not (self._guard.poisoned or self._guard.closed)

    # ------------------------------------------------------------------
    # Application keys
    # ------------------------------------------------------------------

    def issue_key(self, app_id: bytes) -> ApplicationEncryptionKey:
        self._require_open()
        return self._registry.issue(app_id)

    def lookup_key(self, app_id: bytes) -> ApplicationEncryptionKey:
        return self._registry.lookup(app_id)

    def revoke_key(self, app_id: bytes) -> bool:
        return self._registry.revoke(app_id)

    def attached_applications(self) -> list[bytes]:
        return self._registry.attached()

    def open_channel(self, app_id: bytes) -> ApplicationChannel:
        """Return a launcher-side channel for an attached application."""
        return ApplicationChannel(
            self._registry.lookup(app_id),
            is_launcher=True,
            max_counter=self.config.MAX_COUNTER,
            max_ciphertext_len=self.config.MAX_CIPHERTEXT_LEN,
        )

    def _require_open(self) -> None:
        if self._guard.closed:
            msg = "session is closed"
            raise EngineUnavailable(msg)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Drop all application keys and log the engine out."""
        if self._guard.closed:
            return
        self._guard.ensure_not_held()
        self._registry.clear()

        if self._guard.poisoned:
            logger.warning("Engine is poisoned; skipping log out")
            self._guard.close()
            return

        try:
            self._guard.with_engine(lambda engine: engine.log_out())
        except ReentrantEngineAccess:
            raise
        except EngineUnavailable:
            logger.warning("Engine became unavailable before log out")
        except Exception as err:
            raise UnexpectedCollaboratorFailure(err) from err
        finally:
            self._guard.close()
        logger.info("Session closed")

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
