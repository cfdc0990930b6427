"""Business logic for the launcher's IPC boundary.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import TYPE_CHECKING, Any, Callable

from pydantic import ValidationError

from safe_launcher.common.exceptions import ChannelError, KeyNotFound, LauncherError
from safe_launcher.common.logging_utils import short_id
from safe_launcher.common.models import (
    AttachRequest,
    AttachResponse,
    OperationRequest,
    OperationResult,
)
from safe_launcher.launcher.key_registry import new_application_identity

if TYPE_CHECKING:
    from safe_launcher.common.channel import ApplicationChannel
    from safe_launcher.launcher.session import Session

Operation = Callable[[Any, dict[str, Any]], Any]


def engine_operations(names: tuple[str, ...] | list[str]) -> dict[str, Operation]:
    """Build an operation table that forwards params as keyword arguments."""

    def forward(name: str) -> Operation:
        def call(engine: Any, params: dict[str, Any]) -> Any:
            return getattr(engine, name)(**params)

        return call

    return {name: forward(name) for name in names}


class IpcService:
    """Attaches applications and runs their sealed requests against the engine."""

    def __init__(
        self,
        session: Session,
        operations: dict[str, Operation],
        logger: logging.Logger,
    ):
        self.session = session
        self.operations = operations
        self.logger = logger
        self._channels: dict[bytes, ApplicationChannel] = {}
        self._names: dict[bytes, str] = {}
        self._lock = threading.Lock()

    def health(self) -> dict[str, Any]:
        return {
            "status": "ok" if self.session.engine_available else "degraded",
            "attached": len(self.session.attached_applications()),
            "timestamp": int(time.time()),
        }

    @staticmethod
    def parse_app_id(app_id_hex: str) -> bytes:
        try:
            return bytes.fromhex(app_id_hex)
        except ValueError as err:
            msg = "malformed application id"
            raise LauncherError(msg, 400) from err

    def attach(self, req: AttachRequest) -> AttachResponse:
        app_id = new_application_identity()
        key = self.session.issue_key(app_id)
        channel = self.session.open_channel(app_id)
        with self._lock:
            self._channels[app_id] = channel
            self._names[app_id] = req.name
        self.logger.info("Attached application '%s' as %s", req.name, short_id(app_id))
        return AttachResponse(app_id=app_id.hex(), **key.to_hex())

    def detach(self, app_id_hex: str) -> dict[str, Any]:
        app_id = self.parse_app_id(app_id_hex)
        with self._lock:
            self._channels.pop(app_id, None)
            name = self._names.pop(app_id, None)
        revoked = self.session.revoke_key(app_id)
        if revoked:
            self.logger.info("Detached application '%s' (%s)", name, short_id(app_id))
        return {"detached": revoked}

    def _channel_for(self, app_id: bytes) -> ApplicationChannel:
        # Registry is the source of truth; a channel without a key is stale
        self.session.lookup_key(app_id)
        with self._lock:
            channel = self._channels.get(app_id)
        if channel is None:
            msg = f"no channel for application {short_id(app_id)}"
            raise KeyNotFound(msg)
        return channel

    def handle_message(self, app_id_hex: str, payload_hex: str) -> str:
        """Open a sealed request, run it and return the sealed reply (hex)."""
        app_id = self.parse_app_id(app_id_hex)
        channel = self._channel_for(app_id)

        try:
            sealed = bytes.fromhex(payload_hex)
        except ValueError as err:
            msg = "payload is not hex"
            raise ChannelError(msg) from err
        plaintext = channel.open(sealed)

        try:
            request = OperationRequest.model_validate_json(plaintext)
        except ValidationError as err:
            msg = "malformed operation request"
            raise ChannelError(msg) from err

        result = self.dispatch(app_id, request)
        reply = json.dumps(result.model_dump()).encode()
        return channel.seal(reply).hex()

    def dispatch(self, app_id: bytes, request: OperationRequest) -> OperationResult:
        operation = self.operations.get(request.operation)
        if operation is None:
            msg = f"unknown operation: {request.operation}"
            raise LauncherError(msg, 400)

        self.logger.debug(
            "Application %s requested '%s'", short_id(app_id), request.operation
        )
        try:
            result = self.session.with_engine(
                lambda engine: operation(engine, request.params)
            )
        except LauncherError:
            raise
        except Exception as err:  # noqa: BLE001
            # Engine-level failures belong to the application, not the launcher
            self.logger.info(
                "Operation '%s' failed for %s: %s",
                request.operation,
                short_id(app_id),
                err,
            )
            return OperationResult(ok=False, error=str(err))
        return OperationResult(ok=True, result=result)
