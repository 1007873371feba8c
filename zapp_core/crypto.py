"""
zapp_core.crypto
----------------
Implements cryptographic primitives for Zapp:

- AES-256-GCM: authenticated symmetric encryption of envelope content
- RSA-OAEP (SHA-256): wrapping of the per-envelope symmetric key
- RSA PKCS#1 v1.5 (SHA-256): signatures binding the sender to an envelope

The envelope builder and parser compose these; nothing here keeps state.
"""

from __future__ import annotations
from typing import Callable, Optional, Tuple
import os

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .constants import AES_KEY_LEN, AES_GCM_IV_LEN
from .errors import AuthenticationError

RandomBytes = Callable[[int], bytes]


# --------- Ephemeral key material ----------
def generate_symmetric_material(random_bytes: RandomBytes = os.urandom) -> Tuple[bytearray, bytes]:
    """Fresh 32-byte key and 12-byte IV for exactly one envelope."""
    key = bytearray(random_bytes(AES_KEY_LEN))
    iv = bytes(random_bytes(AES_GCM_IV_LEN))
    if len(key) != AES_KEY_LEN or len(iv) != AES_GCM_IV_LEN:
        raise ValueError("random source returned short output")
    return key, iv


def wipe(buf: Optional[bytearray]) -> None:
    if buf is None:
        return
    for i in range(len(buf)):
        buf[i] = 0


def _check_aead_params(key, iv) -> None:
    if len(key) != AES_KEY_LEN:
        raise ValueError(f"AES-256-GCM key must be {AES_KEY_LEN} bytes, got {len(key)}")
    if len(iv) != AES_GCM_IV_LEN:
        raise ValueError(f"AES-GCM IV must be {AES_GCM_IV_LEN} bytes, got {len(iv)}")


# --------- AES-256-GCM (encrypt/decrypt) ----------
def aead_encrypt(key: bytes, iv: bytes, plaintext: bytes, aad: Optional[bytes] = None) -> bytes:
    """
    Encrypt with AES-256-GCM. Returns ciphertext with the 16-byte tag appended.

    The caller owns the (key, iv) pair and must never reuse it.
    """
    _check_aead_params(key, iv)
    return AESGCM(bytes(key)).encrypt(iv, plaintext, aad)


def aead_decrypt(key: bytes, iv: bytes, ciphertext: bytes, aad: Optional[bytes] = None) -> bytes:
    """
    Decrypt ciphertext||tag. Raises AuthenticationError on tag mismatch;
    no plaintext is released unless the tag verifies.
    """
    _check_aead_params(key, iv)
    try:
        return AESGCM(bytes(key)).decrypt(iv, ciphertext, aad)
    except InvalidTag as exc:
        raise AuthenticationError("AES-GCM authentication tag mismatch") from exc


# --------- RSA-OAEP (wrap/unwrap) ----------
def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


def rsa_wrap_key(public_key: rsa.RSAPublicKey, key_bytes: bytes) -> bytes:
    return public_key.encrypt(bytes(key_bytes), _oaep())


def rsa_unwrap_key(private_key: rsa.RSAPrivateKey, wrapped: bytes) -> bytes:
    # raises ValueError on padding/length failure; the parser maps it to KeyUnwrapError
    return private_key.decrypt(wrapped, _oaep())


# --------- RSA PKCS#1 v1.5 (sign/verify) ----------
def rsa_sign(private_key: rsa.RSAPrivateKey, data: bytes) -> bytes:
    return private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())


def rsa_verify(public_key: rsa.RSAPublicKey, signature: bytes, data: bytes) -> bool:
    try:
        public_key.verify(signature, data, padding.PKCS1v15(), hashes.SHA256())
        return True
    except (InvalidSignature, ValueError):
        return False
