"""
zapp_core.errors
----------------
Failure taxonomy for key handling and envelope processing.

Every error is terminal for the operation that raised it: a rejected
envelope is discarded (or re-requested from the sender), never retried
with relaxed checks.
"""

from __future__ import annotations


class ZappCryptoError(Exception):
    kind: str = "crypto_error"


class KeyGenerationError(ZappCryptoError):
    kind = "key_generation"


class FormatError(ZappCryptoError):
    """Malformed serialized key or envelope."""
    kind = "format"


class VersionError(FormatError):
    """Envelope carries a version this build does not speak."""
    kind = "version"


class AuthenticityError(ZappCryptoError):
    """Signature over the envelope did not verify against the sender key."""
    kind = "authenticity"


class KeyUnwrapError(ZappCryptoError):
    kind = "key_unwrap"


class AuthenticationError(ZappCryptoError):
    """AES-GCM tag mismatch."""
    kind = "authentication"


class KeyStoreWriteError(RuntimeError):
    """The Key Store refused to persist the device key pair."""
