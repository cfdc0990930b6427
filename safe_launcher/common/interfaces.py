"""
Interfaces and protocols for the launcher's external collaborators.
"""

from __future__ import annotations

from typing import Protocol

from safe_launcher.common.models import ApplicationEncryptionKey


class IEngine(Protocol):
    """Authenticated network client handle.

    Only ``log_out`` is required by the session core; every other operation is
    reached through ``Session.with_engine`` and is opaque here.
    """

    def log_out(self) -> None: ...


class IAuthenticator(Protocol):
    """Self-authentication collaborator that yields engine handles."""

    def register(self, keyword: str, pin: str, password: str) -> IEngine: ...

    def login(self, keyword: str, pin: str, password: str) -> IEngine: ...


class IKeyRegistry(Protocol):
    """Protocol for per-application key management."""

    def issue(self, app_id: bytes) -> ApplicationEncryptionKey: ...

    def lookup(self, app_id: bytes) -> ApplicationEncryptionKey: ...

    def revoke(self, app_id: bytes) -> bool: ...

    def attached(self) -> list[bytes]: ...

    def clear(self) -> None: ...
