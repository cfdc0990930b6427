"""
Application-side client for the launcher IPC server.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from safe_launcher.common.channel import ApplicationChannel
from safe_launcher.common.config import Config
from safe_launcher.common.exceptions import LauncherError
from safe_launcher.common.models import (
    ApplicationEncryptionKey,
    AttachRequest,
    AttachResponse,
    OperationRequest,
    OperationResult,
    SealedMessage,
)

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10


class ApplicationClient:
    """Attaches to a running launcher and performs engine operations."""

    def __init__(self, server_url: str | None = None, name: str = "application"):
        self.server_url = (server_url or Config().SERVER_URL).rstrip("/")
        self.name = name
        self.app_id: str | None = None
        self._channel: ApplicationChannel | None = None

    @property
    def attached(self) -> bool:
        return self._channel is not None

    def attach(self) -> str:
        """Attach to the launcher and set up the sealed channel."""
        req = AttachRequest(name=self.name)
        r = requests.post(
            f"{self.server_url}/apps", json=req.model_dump(), timeout=REQUEST_TIMEOUT
        )
        r.raise_for_status()
        resp = AttachResponse.model_validate(r.json())

        key = ApplicationEncryptionKey.from_hex(resp.nonce, resp.key)
        self._channel = ApplicationChannel(key, is_launcher=False)
        self.app_id = resp.app_id
        logger.info("Attached to launcher as %s", self.app_id[:8])
        return self.app_id

    def call(self, operation: str, **params: Any) -> Any:
        """Run ``operation`` on the launcher's engine and return its result."""
        if self._channel is None or self.app_id is None:
            msg = "not attached to a launcher"
            raise LauncherError(msg, 401)

        plaintext = OperationRequest(operation=operation, params=params)
        sealed = self._channel.seal(plaintext.model_dump_json().encode())
        r = requests.post(
            f"{self.server_url}/apps/{self.app_id}/messages",
            json=SealedMessage(payload=sealed.hex()).model_dump(),
            timeout=REQUEST_TIMEOUT,
        )
        r.raise_for_status()
        reply = SealedMessage.model_validate(r.json())

        result = OperationResult.model_validate(
            json.loads(self._channel.open(bytes.fromhex(reply.payload)))
        )
        if not result.ok:
            raise LauncherError(result.error or f"{operation} failed", 400)
        return result.result

    def detach(self) -> None:
        if self.app_id is None:
            return
        r = requests.delete(
            f"{self.server_url}/apps/{self.app_id}", timeout=REQUEST_TIMEOUT
        )
        r.raise_for_status()
        logger.info("Detached from launcher")
        self.app_id = None
        self._channel = None
