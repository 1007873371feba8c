"""
zapp_core.fingerprint
---------------------
Stable, human-comparable device identity derived from an RSA public key.

    fingerprint = SHA-256(serialize_public_key(pk)) as upper-case hex,
                  colon between every byte (SSH style)

The fingerprint is the key a peer is stored under in the Key Store.
"""

from __future__ import annotations
import re

from cryptography.hazmat.primitives.asymmetric import rsa

from .codec import serialize_public_key, deserialize_public_key
from .utils import sha256

_FINGERPRINT_RE = re.compile(r"^[0-9A-F]{2}(:[0-9A-F]{2}){31}$")


def fingerprint(public_key: rsa.RSAPublicKey) -> str:
    return _format(sha256(serialize_public_key(public_key).encode("utf-8")))


def fingerprint_from_serialized(public_key_blob: str) -> str:
    """Fingerprint a stored public key blob; re-serializes so equal keys always agree."""
    return fingerprint(deserialize_public_key(public_key_blob))


def is_valid_fingerprint(value: str) -> bool:
    return isinstance(value, str) and bool(_FINGERPRINT_RE.match(value))


def _format(hex_digest: str) -> str:
    digest = hex_digest.upper()
    return ":".join(digest[i:i + 2] for i in range(0, len(digest), 2))
