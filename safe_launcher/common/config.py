"""
Configuration settings for the launcher session core.
"""

from __future__ import annotations

import logging
import os


class Config:
    """Central configuration class for all launcher settings."""

    # Key material sizes (ChaCha20-Poly1305)
    NONCE_LEN: int = 12
    KEY_LEN: int = 32
    APP_ID_LEN: int = 32

    # Channel limits
    MAX_COUNTER: int = 2**40  # Prevent nonce reuse: hard cap on messages per key
    MAX_CIPHERTEXT_LEN: int = 1024 * 1024  # 1MB, prevent DoS

    # Reference network collaborator
    PBKDF2_ITERATIONS: int = 100_000

    def __init__(self) -> None:
        # IPC server settings
        self.SERVER_HOST: str = os.getenv("SAFE_LAUNCHER_HOST", "127.0.0.1")
        self.SERVER_PORT: int = int(os.getenv("SAFE_LAUNCHER_PORT", "8100"))
        self.SERVER_URL: str = f"http://{self.SERVER_HOST}:{self.SERVER_PORT}"

        # Guarded engine access; None means callers wait indefinitely
        engine_timeout = os.getenv("SAFE_LAUNCHER_ENGINE_TIMEOUT")
        self.ENGINE_TIMEOUT: float | None = (
            float(engine_timeout) if engine_timeout else None
        )

        # Logging
        self.LOG_LEVEL: int = getattr(
            logging, os.getenv("SAFE_LAUNCHER_LOG_LEVEL", "INFO").upper(), logging.INFO
        )
