"""
zapp_core.envelope
------------------
Defines the Envelope class, the only artifact two paired Zapp devices
exchange for content transport.

Wire form is a JSON object with exactly five fields:

    encryptedAesKey   base64  RSA-OAEP wrapped AES key
    encryptedContent  base64  AES-256-GCM ciphertext || tag
    iv                base64  12-byte GCM nonce
    signature         base64  RSA signature over ciphertext || iv || wrapped key
    version           str     wire format version ("1.0")

Decoding is strict: unknown or missing fields, non-string values and bad
base64 raise FormatError; an unknown version raises VersionError before any
field is decoded.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Union
import json

from .constants import (
    AES_GCM_IV_LEN,
    ENVELOPE_VERSION,
    SUPPORTED_ENVELOPE_VERSIONS,
    WIRE_FIELD_WRAPPED_KEY,
    WIRE_FIELD_CIPHERTEXT,
    WIRE_FIELD_IV,
    WIRE_FIELD_SIGNATURE,
    WIRE_FIELD_VERSION,
)
from .errors import FormatError, VersionError
from .utils import b64e, b64d

WIRE_FIELDS = frozenset({
    WIRE_FIELD_WRAPPED_KEY,
    WIRE_FIELD_CIPHERTEXT,
    WIRE_FIELD_IV,
    WIRE_FIELD_SIGNATURE,
    WIRE_FIELD_VERSION,
})


@dataclass(frozen=True)
class Envelope:
    wrapped_key: bytes
    ciphertext: bytes       # includes the 16-byte GCM tag
    iv: bytes
    signature: bytes
    version: str = ENVELOPE_VERSION

    def to_signing_bytes(self) -> bytes:
        return signing_bytes(self.ciphertext, self.iv, self.wrapped_key)

    def to_dict(self) -> Dict[str, str]:
        return {
            WIRE_FIELD_WRAPPED_KEY: b64e(self.wrapped_key),
            WIRE_FIELD_CIPHERTEXT: b64e(self.ciphertext),
            WIRE_FIELD_IV: b64e(self.iv),
            WIRE_FIELD_SIGNATURE: b64e(self.signature),
            WIRE_FIELD_VERSION: self.version,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def to_json_bytes(self) -> bytes:
        return self.to_json().encode("utf-8")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Envelope":
        """Reconstruct an Envelope from its wire dict (inverse of to_dict)."""
        if not isinstance(data, dict):
            raise FormatError("envelope must be a JSON object")

        keys = set(data)
        missing = WIRE_FIELDS - keys
        unknown = keys - WIRE_FIELDS
        if missing:
            raise FormatError(f"envelope is missing fields: {sorted(missing)}")
        if unknown:
            raise FormatError(f"envelope has unknown fields: {sorted(unknown)}")

        version = data[WIRE_FIELD_VERSION]
        if not isinstance(version, str):
            raise FormatError("envelope version must be a string")
        if version not in SUPPORTED_ENVELOPE_VERSIONS:
            raise VersionError(f"unsupported envelope version: {version!r}")

        iv = _b64_field(data, WIRE_FIELD_IV)
        if len(iv) != AES_GCM_IV_LEN:
            raise FormatError(f"iv must be {AES_GCM_IV_LEN} bytes, got {len(iv)}")

        return cls(
            wrapped_key=_b64_field(data, WIRE_FIELD_WRAPPED_KEY),
            ciphertext=_b64_field(data, WIRE_FIELD_CIPHERTEXT),
            iv=iv,
            signature=_b64_field(data, WIRE_FIELD_SIGNATURE),
            version=version,
        )

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "Envelope":
        try:
            data = json.loads(raw)
        except (ValueError, TypeError) as exc:
            raise FormatError(f"envelope is not valid JSON: {exc}") from exc
        return cls.from_dict(data)


def signing_bytes(ciphertext: bytes, iv: bytes, wrapped_key: bytes) -> bytes:
    """Exact byte string the sender signs: ciphertext || iv || wrapped key."""
    return bytes(ciphertext) + bytes(iv) + bytes(wrapped_key)


def _b64_field(data: Dict[str, Any], name: str) -> bytes:
    value = data[name]
    if not isinstance(value, str):
        raise FormatError(f"envelope field {name!r} must be a base64 string")
    try:
        decoded = b64d(value)
    except ValueError as exc:
        raise FormatError(f"envelope field {name!r} is not valid base64") from exc
    if not decoded:
        raise FormatError(f"envelope field {name!r} is empty")
    return decoded
