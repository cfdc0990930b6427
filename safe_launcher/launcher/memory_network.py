"""
In-process reference network for running the launcher without a live network.

``InMemoryNetwork`` plays the self-authentication collaborator: the keyword
and pin locate the account, the password unlocks it. ``MemoryClient`` is the
engine handed back on success; it keeps a small per-account name/value store
and is deliberately not thread-safe, so it must be reached through the
session's guarded access.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from safe_launcher.common.config import Config

logger = logging.getLogger(__name__)


class NetworkError(Exception):
    """Base exception raised by the in-process network."""


class AccountExistsError(NetworkError):
    """An account already exists for the keyword and pin."""


class InvalidCredentialsError(NetworkError):
    """No account matches the keyword, pin and password."""


@dataclass
class _Account:
    salt: bytes
    verifier: bytes
    data: dict[str, Any] = field(default_factory=dict)


def _locator(keyword: str, pin: str) -> str:
    return hashlib.sha256(f"{keyword}\x00{pin}".encode()).hexdigest()


def _verifier(password: str, salt: bytes, iterations: int) -> bytes:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    ).derive(password.encode())


class MemoryClient:
    """Engine handle bound to one logged-in account."""

    OPERATIONS = ("put", "get", "delete", "list_names")

    def __init__(self, account: _Account, locator: str) -> None:
        self._account = account
        self.locator = locator
        self.logged_in = True
        self.version = 0

    def _require_login(self) -> None:
        if not self.logged_in:
            msg = "client is logged out"
            raise NetworkError(msg)

    def put(self, name: str, value: Any) -> int:
        self._require_login()
        self._account.data[name] = value
        self.version += 1
        return self.version

    def get(self, name: str) -> Any:
        self._require_login()
        try:
            return self._account.data[name]
        except KeyError as err:
            msg = f"no such entry: {name}"
            raise NetworkError(msg) from err

    def delete(self, name: str) -> bool:
        self._require_login()
        removed = self._account.data.pop(name, None) is not None
        if removed:
            self.version += 1
        return removed

    def list_names(self) -> list[str]:
        self._require_login()
        return sorted(self._account.data)

    def log_out(self) -> None:
        self.logged_in = False


class InMemoryNetwork:
    """Account directory implementing the authenticator contract."""

    def __init__(self, iterations: int = Config.PBKDF2_ITERATIONS) -> None:
        self.iterations = iterations
        self._accounts: dict[str, _Account] = {}
        self._lock = threading.Lock()

    def register(self, keyword: str, pin: str, password: str) -> MemoryClient:
        locator = _locator(keyword, pin)
        salt = os.urandom(16)
        account = _Account(salt=salt, verifier=_verifier(password, salt, self.iterations))
        with self._lock:
            if locator in self._accounts:
                msg = "account already exists"
                raise AccountExistsError(msg)
            self._accounts[locator] = account
        logger.debug("Registered account %s", locator[:8])
        return MemoryClient(account, locator)

    def login(self, keyword: str, pin: str, password: str) -> MemoryClient:
        locator = _locator(keyword, pin)
        with self._lock:
            account = self._accounts.get(locator)
        if account is None:
            msg = "invalid credentials"
            raise InvalidCredentialsError(msg)
        expected = _verifier(password, account.salt, self.iterations)
        if not hmac.compare_digest(expected, account.verifier):
            msg = "invalid credentials"
            raise InvalidCredentialsError(msg)
        logger.debug("Logged in account %s", locator[:8])
        return MemoryClient(account, locator)
