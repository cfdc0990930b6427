"""Common cryptographic utilities.
"""

from __future__ import annotations

import os

from safe_launcher.common.config import Config


class CryptoUtils:
    """Utility class for cryptographic operations."""

    @staticmethod
    def random_bytes(length: int) -> bytes:
        """Return ``length`` bytes from the OS CSPRNG."""
        return os.urandom(length)

    @staticmethod
    def generate_nonce() -> bytes:
        return os.urandom(Config.NONCE_LEN)

    @staticmethod
    def generate_key() -> bytes:
        return os.urandom(Config.KEY_LEN)

    @staticmethod
    def derive_message_nonce(base_nonce: bytes, direction: int, counter: int) -> bytes:
        """Calculate the nonce for message ``counter`` sent in ``direction``.

        The base nonce is XORed with ``direction`` (4 bytes) followed by
        ``counter`` (8 bytes), so every (direction, counter) pair maps to a
        distinct nonce under the same key.
        """
        if len(base_nonce) != Config.NONCE_LEN:
            msg = f"base nonce must be {Config.NONCE_LEN} bytes"
            raise ValueError(msg)
        mask = direction.to_bytes(4, "big") + counter.to_bytes(8, "big")
        return bytes(a ^ b for a, b in zip(base_nonce, mask, strict=True))
