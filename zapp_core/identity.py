"""
zapp_core.identity
------------------
Device setup and peer linking on top of the Key Store.

- ensure_device_identity(): load this device's key pair, or generate and
  persist one on first run
- link_device(): record a peer's public key delivered by the pairing channel
  under its fingerprint
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Union
import os

from cryptography.hazmat.primitives.asymmetric import rsa

from .codec import deserialize_public_key
from .errors import KeyGenerationError, KeyStoreWriteError
from .constants import RSA_DEFAULT_BITS
from .fingerprint import fingerprint
from .keys import KeyPair, generate_keypair
from .logger import get_logger
from .storage.provider import KeyStore

log = get_logger("Zapp.Identity")


@dataclass(frozen=True)
class DeviceIdentity:
    key_pair: KeyPair
    fingerprint: str
    created: bool = False   # True when generated during this call


def ensure_device_identity(store: KeyStore, bit_length: Optional[int] = None) -> DeviceIdentity:
    """
    Return the stored identity, generating one if the store is empty.

    Key size defaults to ZAPP_KEY_BITS (2048). Raises KeyStoreWriteError if a
    freshly generated pair cannot be persisted.
    """
    key_pair = store.load()
    if key_pair is not None:
        fpr = fingerprint(key_pair.public_key)
        log.info(f"[IDENTITY] loaded device identity {fpr}")
        return DeviceIdentity(key_pair=key_pair, fingerprint=fpr, created=False)

    if bit_length is None:
        raw = os.getenv("ZAPP_KEY_BITS", str(RSA_DEFAULT_BITS))
        try:
            bit_length = int(raw)
        except ValueError as exc:
            raise KeyGenerationError(f"ZAPP_KEY_BITS must be an integer, got {raw!r}") from exc

    log.info("[IDENTITY] no stored identity, generating a new key pair")
    key_pair = generate_keypair(bit_length)
    if not store.save(key_pair):
        raise KeyStoreWriteError("could not persist the generated key pair")

    fpr = fingerprint(key_pair.public_key)
    log.info(f"[IDENTITY] created device identity {fpr}")
    return DeviceIdentity(key_pair=key_pair, fingerprint=fpr, created=True)


def link_device(store: KeyStore, device_name: str, public_key: Union[rsa.RSAPublicKey, str]) -> Optional[str]:
    """
    Store a paired peer's public key.

    Args:
        store: Key Store to write to
        device_name: Display name delivered with the key
        public_key: RSAPublicKey or its serialized form (FormatError if malformed)

    Returns:
        The peer's fingerprint, or None if the store rejected the write.
    """
    if isinstance(public_key, str):
        public_key = deserialize_public_key(public_key)

    fpr = fingerprint(public_key)
    if not store.save_device_public_key(fpr, device_name, public_key):
        return None
    return fpr
