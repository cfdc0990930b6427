"""
Custom exceptions for the launcher session core.

The launcher-facing failures form a closed set rooted at ``LauncherError`` so
callers can pick user-facing messaging by type alone.
"""

from __future__ import annotations


class LauncherError(Exception):
    """Base exception for launcher failures."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class _CollaboratorFailure(LauncherError):
    """Failure that carries the collaborator's own exception verbatim."""

    action: str = "collaborator call"

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"{self.action} failed: {cause}")
        self.cause = cause


class AccountCreationFailed(_CollaboratorFailure):
    """Registering a new account was rejected by the authenticator."""

    action = "account creation"
    status_code = 400


class LoginFailed(_CollaboratorFailure):
    """Logging into an existing account was rejected by the authenticator."""

    action = "login"
    status_code = 401


class UnexpectedCollaboratorFailure(_CollaboratorFailure):
    """A collaborator misbehaved outside its documented failure modes."""

    action = "collaborator call"
    status_code = 502


class EngineUnavailable(LauncherError):
    """The engine guard is poisoned or the session has been closed."""

    status_code = 503


class DuplicateKeyIssuance(LauncherError):
    """A key was requested for an application that already holds one."""

    status_code = 409


class KeyNotFound(LauncherError):
    """No key is registered for the application."""

    status_code = 401


class ChannelError(LauncherError):
    """A sealed message failed authentication, replay or size checks."""

    status_code = 400


class ReentrantEngineAccess(RuntimeError):
    """Engine access was requested by a unit of work already holding it."""
