"""
zapp_core.builder
-----------------
Seals plaintext into an Envelope for one paired device.

Workflow (encrypt-then-sign):
1. Draw a fresh AES-256 key and 12-byte IV
2. Encrypt the plaintext with AES-256-GCM
3. Wrap the AES key for the recipient with RSA-OAEP (SHA-256)
4. Sign ciphertext || iv || wrapped key with the sender's private key
5. Package into an Envelope (version "1.0")
"""

from __future__ import annotations
from typing import Union
import os

from cryptography.hazmat.primitives.asymmetric import rsa

from .constants import ENVELOPE_VERSION
from .crypto import (
    RandomBytes,
    aead_encrypt,
    generate_symmetric_material,
    rsa_sign,
    rsa_wrap_key,
    wipe,
)
from .envelope import Envelope, signing_bytes
from .logger import get_logger

log = get_logger("Zapp.Envelope")


class EnvelopeBuilder:
    """
    Builds sealed envelopes.

    The only dependency is the random source, passed in explicitly
    (default os.urandom). A builder holds no mutable state and can be
    shared between threads.
    """

    def __init__(self, random_bytes: RandomBytes = os.urandom):
        self.random_bytes = random_bytes

    def seal(
        self,
        plaintext: Union[bytes, str],
        recipient_public_key: rsa.RSAPublicKey,
        sender_private_key: rsa.RSAPrivateKey,
    ) -> Envelope:
        """
        Encrypt, wrap and sign `plaintext` for the holder of `recipient_public_key`.

        Args:
            plaintext: Message content; str is encoded as UTF-8
            recipient_public_key: Peer's RSA public key (from the Key Store)
            sender_private_key: This device's RSA private key

        Returns:
            Envelope ready for Envelope.to_json()
        """
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")

        # 1. Ephemeral material, never reused
        key, iv = generate_symmetric_material(self.random_bytes)
        try:
            # 2. Encrypt content
            ciphertext = aead_encrypt(key, iv, plaintext)

            # 3. Wrap the content key, never the plaintext
            wrapped_key = rsa_wrap_key(recipient_public_key, key)
        finally:
            wipe(key)

        # 4. Sign the already-encrypted artifacts
        signature = rsa_sign(sender_private_key, signing_bytes(ciphertext, iv, wrapped_key))

        log.debug(f"[SEAL] sealed {len(plaintext)} bytes → ciphertext={len(ciphertext)} wrapped_key={len(wrapped_key)}")

        # 5. Assemble
        return Envelope(
            wrapped_key=wrapped_key,
            ciphertext=ciphertext,
            iv=iv,
            signature=signature,
            version=ENVELOPE_VERSION,
        )


def seal_envelope(
    plaintext: Union[bytes, str],
    recipient_public_key: rsa.RSAPublicKey,
    sender_private_key: rsa.RSAPrivateKey,
    random_bytes: RandomBytes = os.urandom,
) -> Envelope:
    return EnvelopeBuilder(random_bytes).seal(plaintext, recipient_public_key, sender_private_key)
