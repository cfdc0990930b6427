"""
Authenticated message channel built on an issued application key.

Sealed message layout:
- 8 bytes: big-endian message counter
- N bytes: ChaCha20-Poly1305 ciphertext (tag included)

Each side counts its own outgoing messages, and the per-message nonce is
derived from the stored base nonce, the direction and the counter. The
receiving side accepts each counter once, and only within a sliding window
of REPLAY_WINDOW counters behind the highest one seen, so requests that are
in flight concurrently may arrive out of order.
"""

from __future__ import annotations

import threading

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from safe_launcher.common.config import Config
from safe_launcher.common.crypto import CryptoUtils
from safe_launcher.common.exceptions import ChannelError
from safe_launcher.common.models import ApplicationEncryptionKey

COUNTER_LEN = 8
REPLAY_WINDOW = 64

LAUNCHER_TO_APP = 0
APP_TO_LAUNCHER = 1

_DIRECTION_LABELS = {
    LAUNCHER_TO_APP: b"safe-launcher:launcher->app",
    APP_TO_LAUNCHER: b"safe-launcher:app->launcher",
}


class ApplicationChannel:
    """Seals and opens messages exchanged with one application."""

    def __init__(
        self,
        key: ApplicationEncryptionKey,
        *,
        is_launcher: bool = True,
        max_counter: int = Config.MAX_COUNTER,
        max_ciphertext_len: int = Config.MAX_CIPHERTEXT_LEN,
    ) -> None:
        self._base_nonce = key.nonce
        self._aead = ChaCha20Poly1305(key.key)
        self._send_direction = LAUNCHER_TO_APP if is_launcher else APP_TO_LAUNCHER
        self._recv_direction = APP_TO_LAUNCHER if is_launcher else LAUNCHER_TO_APP
        self.max_counter = max_counter
        self.max_ciphertext_len = max_ciphertext_len
        self._send_counter = 0
        self._highest_received: int | None = None
        self._seen_window = 0  # bit i set: counter (highest - i) was accepted
        self._lock = threading.Lock()

    def seal(self, plaintext: bytes) -> bytes:
        with self._lock:
            counter = self._send_counter
            if counter >= self.max_counter:
                msg = "message counter exhausted; the key must be reissued"
                raise ChannelError(msg)
            self._send_counter += 1

        nonce = CryptoUtils.derive_message_nonce(
            self._base_nonce, self._send_direction, counter
        )
        ct = self._aead.encrypt(
            nonce, plaintext, _DIRECTION_LABELS[self._send_direction]
        )
        return counter.to_bytes(COUNTER_LEN, "big") + ct

    def open(self, sealed: bytes) -> bytes:
        if len(sealed) <= COUNTER_LEN:
            msg = "sealed message too short"
            raise ChannelError(msg)
        if len(sealed) - COUNTER_LEN > self.max_ciphertext_len:
            msg = "ciphertext too large"
            raise ChannelError(msg, 413)

        counter = int.from_bytes(sealed[:COUNTER_LEN], "big")
        if counter >= self.max_counter:
            msg = "message counter out of range"
            raise ChannelError(msg)

        nonce = CryptoUtils.derive_message_nonce(
            self._base_nonce, self._recv_direction, counter
        )
        try:
            plaintext = self._aead.decrypt(
                nonce, sealed[COUNTER_LEN:], _DIRECTION_LABELS[self._recv_direction]
            )
        except InvalidTag as err:
            msg = "message authentication failed"
            raise ChannelError(msg) from err

        # Counter only advances once the message has authenticated
        with self._lock:
            self._accept_counter(counter)
        return plaintext

    def _accept_counter(self, counter: int) -> None:
        highest = self._highest_received
        if highest is None or counter > highest:
            shift = counter + 1 if highest is None else counter - highest
            if shift >= REPLAY_WINDOW:
                self._seen_window = 1
            else:
                mask = (1 << REPLAY_WINDOW) - 1
                self._seen_window = ((self._seen_window << shift) | 1) & mask
            self._highest_received = counter
            return

        offset = highest - counter
        if offset >= REPLAY_WINDOW:
            msg = "message counter is outside the replay window"
            raise ChannelError(msg)
        if self._seen_window & (1 << offset):
            msg = "replayed message"
            raise ChannelError(msg)
        self._seen_window |= 1 << offset
