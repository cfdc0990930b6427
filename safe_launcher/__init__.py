# SAFE Launcher session core

from safe_launcher.common.exceptions import (
    AccountCreationFailed,
    DuplicateKeyIssuance,
    EngineUnavailable,
    KeyNotFound,
    LauncherError,
    LoginFailed,
    UnexpectedCollaboratorFailure,
)
from safe_launcher.common.models import ApplicationEncryptionKey
from safe_launcher.launcher.key_registry import new_application_identity
from safe_launcher.launcher.session import Session

__all__ = [
    "AccountCreationFailed",
    "ApplicationEncryptionKey",
    "DuplicateKeyIssuance",
    "EngineUnavailable",
    "KeyNotFound",
    "LauncherError",
    "LoginFailed",
    "Session",
    "UnexpectedCollaboratorFailure",
    "new_application_identity",
]
