"""
Pydantic models for key material and IPC request/response validation.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from safe_launcher.common.config import Config


class ApplicationEncryptionKey(BaseModel):
    """Nonce and symmetric key issued to one attached application."""

    model_config = ConfigDict(frozen=True)

    nonce: bytes
    key: bytes = Field(repr=False)

    @field_validator("nonce")
    @classmethod
    def _check_nonce(cls, value: bytes) -> bytes:
        if len(value) != Config.NONCE_LEN:
            msg = f"nonce must be {Config.NONCE_LEN} bytes"
            raise ValueError(msg)
        return value

    @field_validator("key")
    @classmethod
    def _check_key(cls, value: bytes) -> bytes:
        if len(value) != Config.KEY_LEN:
            msg = f"key must be {Config.KEY_LEN} bytes"
            raise ValueError(msg)
        return value

    def to_hex(self) -> dict[str, str]:
        return {"nonce": self.nonce.hex(), "key": self.key.hex()}

    @classmethod
    def from_hex(cls, nonce: str, key: str) -> ApplicationEncryptionKey:
        return cls(nonce=bytes.fromhex(nonce), key=bytes.fromhex(key))


class AttachRequest(BaseModel):
    name: str = Field(default="application", max_length=128)


class AttachResponse(BaseModel):
    app_id: str
    nonce: str
    key: str


class SealedMessage(BaseModel):
    payload: str


class OperationRequest(BaseModel):
    operation: str
    params: dict[str, Any] = Field(default_factory=dict)


class OperationResult(BaseModel):
    ok: bool
    result: Any = None
    error: str | None = None
