"""
Per-application key registry.
"""

from __future__ import annotations

import logging
import os
import threading

from safe_launcher.common.config import Config
from safe_launcher.common.crypto import CryptoUtils
from safe_launcher.common.exceptions import DuplicateKeyIssuance, KeyNotFound
from safe_launcher.common.logging_utils import short_id
from safe_launcher.common.models import ApplicationEncryptionKey

logger = logging.getLogger(__name__)


def new_application_identity() -> bytes:
    """Mint a fresh opaque application identity."""
    return os.urandom(Config.APP_ID_LEN)


class KeyRegistry:
    """Issues, stores and serves one symmetric key per application identity."""

    def __init__(self) -> None:
        self._keys: dict[bytes, ApplicationEncryptionKey] = {}
        self._lock = threading.Lock()

    def issue(self, app_id: bytes) -> ApplicationEncryptionKey:
        """Generate and store fresh key material for ``app_id``.

        Raises DuplicateKeyIssuance if the identity already holds a key;
        re-issuance is never a silent overwrite.
        """
        app_id = bytes(app_id)
        while True:
            # Generate outside the lock, then check-and-insert atomically
            material = ApplicationEncryptionKey(
                nonce=CryptoUtils.generate_nonce(), key=CryptoUtils.generate_key()
            )
            with self._lock:
                if app_id in self._keys:
                    msg = f"key already issued for application {short_id(app_id)}"
                    raise DuplicateKeyIssuance(msg)
                if not self._collides(material):
                    self._keys[app_id] = material
                    break
            logger.warning("Discarding colliding key material")

        logger.info("Issued key for application %s", short_id(app_id))
        return material

    def _collides(self, material: ApplicationEncryptionKey) -> bool:
        return any(
            existing.nonce == material.nonce or existing.key == material.key
            for existing in self._keys.values()
        )

    def lookup(self, app_id: bytes) -> ApplicationEncryptionKey:
        """Return the key issued to ``app_id`` or raise KeyNotFound."""
        with self._lock:
            material = self._keys.get(bytes(app_id))
        if material is None:
            msg = f"no key for application {short_id(app_id)}"
            raise KeyNotFound(msg)
        return material

    def revoke(self, app_id: bytes) -> bool:
        """Remove the key for ``app_id``. Returns whether one was present."""
        with self._lock:
            removed = self._keys.pop(bytes(app_id), None) is not None
        if removed:
            logger.info("Revoked key for application %s", short_id(app_id))
        return removed

    def attached(self) -> list[bytes]:
        with self._lock:
            return list(self._keys)

    def clear(self) -> None:
        with self._lock:
            count = len(self._keys)
            self._keys.clear()
        logger.debug("Cleared %d application keys", count)

    def __contains__(self, app_id: object) -> bool:
        if not isinstance(app_id, (bytes, bytearray)):
            return False
        with self._lock:
            return bytes(app_id) in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)
