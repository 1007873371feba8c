"""
zapp_core.parser
----------------
Verifies and opens sealed envelopes.

Processing is a strict state machine:

    RECEIVED → PARSED → SIGNATURE_VERIFIED → KEY_UNWRAPPED → DECRYPTED
                  any failed transition → REJECTED

The signature is checked before the RSA unwrap or AES decrypt ever sees
the input, so neither can be used as a padding/tag oracle against
unauthenticated data. No plaintext is released on any failure path.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from cryptography.hazmat.primitives.asymmetric import rsa

from .constants import AES_GCM_IV_LEN, AES_KEY_LEN, SUPPORTED_ENVELOPE_VERSIONS
from .crypto import aead_decrypt, rsa_unwrap_key, rsa_verify, wipe
from .envelope import Envelope
from .errors import (
    AuthenticityError,
    FormatError,
    KeyUnwrapError,
    VersionError,
    ZappCryptoError,
)
from .logger import get_logger

log = get_logger("Zapp.Envelope")

EnvelopeInput = Union[Envelope, Dict[str, Any], str, bytes]


class ParseState(str, Enum):
    RECEIVED = "RECEIVED"
    PARSED = "PARSED"
    SIGNATURE_VERIFIED = "SIGNATURE_VERIFIED"
    KEY_UNWRAPPED = "KEY_UNWRAPPED"
    DECRYPTED = "DECRYPTED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class OpenResult:
    """Outcome of EnvelopeParser.try_open: plaintext on success, the typed error otherwise."""
    state: ParseState
    plaintext: Optional[bytes] = None
    error: Optional[ZappCryptoError] = None

    @property
    def ok(self) -> bool:
        return self.state is ParseState.DECRYPTED

    @property
    def error_kind(self) -> Optional[str]:
        return self.error.kind if self.error is not None else None


class EnvelopeParser:
    """
    Opens envelopes addressed to `local_private_key` and signed by
    `sender_public_key`.

    `state` reflects the most recent open() call, so use one parser per
    thread (they are cheap).
    """

    def __init__(self, local_private_key: rsa.RSAPrivateKey, sender_public_key: rsa.RSAPublicKey):
        self.local_private_key = local_private_key
        self.sender_public_key = sender_public_key
        self.state = ParseState.RECEIVED

    def open(self, envelope: EnvelopeInput) -> bytes:
        """
        Verify and decrypt an envelope.

        Raises:
            FormatError: malformed envelope structure
            VersionError: unsupported envelope version
            AuthenticityError: signature does not match the expected sender
            KeyUnwrapError: wrapped key does not open with the local private key
            AuthenticationError: AES-GCM tag mismatch
        """
        self.state = ParseState.RECEIVED
        try:
            env = self._parse(envelope)
            self.state = ParseState.PARSED

            self._verify(env)
            self.state = ParseState.SIGNATURE_VERIFIED

            key = self._unwrap(env)
            self.state = ParseState.KEY_UNWRAPPED

            try:
                plaintext = aead_decrypt(key, env.iv, env.ciphertext)
            finally:
                wipe(key)
            self.state = ParseState.DECRYPTED
        except ZappCryptoError as exc:
            log.warning(f"[OPEN] rejected envelope at {self.state.value}: {exc.kind}")
            self.state = ParseState.REJECTED
            raise
        except Exception:
            self.state = ParseState.REJECTED
            raise

        log.debug(f"[OPEN] opened envelope → {len(plaintext)} bytes")
        return plaintext

    def try_open(self, envelope: EnvelopeInput) -> OpenResult:
        """Same as open(), but reports the failure kind as a value instead of raising."""
        try:
            plaintext = self.open(envelope)
        except ZappCryptoError as exc:
            return OpenResult(state=self.state, error=exc)
        return OpenResult(state=self.state, plaintext=plaintext)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    @staticmethod
    def _parse(envelope: EnvelopeInput) -> Envelope:
        if isinstance(envelope, Envelope):
            if envelope.version not in SUPPORTED_ENVELOPE_VERSIONS:
                raise VersionError(f"unsupported envelope version: {envelope.version!r}")
            if len(envelope.iv) != AES_GCM_IV_LEN:
                raise FormatError(f"iv must be {AES_GCM_IV_LEN} bytes, got {len(envelope.iv)}")
            return envelope
        if isinstance(envelope, dict):
            return Envelope.from_dict(envelope)
        if isinstance(envelope, (str, bytes)):
            return Envelope.from_json(envelope)
        raise FormatError(f"cannot parse envelope from {type(envelope).__name__}")

    def _verify(self, env: Envelope) -> None:
        if not rsa_verify(self.sender_public_key, env.signature, env.to_signing_bytes()):
            raise AuthenticityError("envelope signature does not match the expected sender")

    def _unwrap(self, env: Envelope) -> bytearray:
        try:
            key = bytearray(rsa_unwrap_key(self.local_private_key, env.wrapped_key))
        except ValueError as exc:
            raise KeyUnwrapError("wrapped key could not be unwrapped with the local private key") from exc
        if len(key) != AES_KEY_LEN:
            wipe(key)
            raise KeyUnwrapError(f"unwrapped key is {len(key)} bytes, expected {AES_KEY_LEN}")
        return key


def open_envelope(
    envelope: EnvelopeInput,
    local_private_key: rsa.RSAPrivateKey,
    sender_public_key: rsa.RSAPublicKey,
) -> bytes:
    return EnvelopeParser(local_private_key, sender_public_key).open(envelope)
