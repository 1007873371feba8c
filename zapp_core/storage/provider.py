# zapp_core/storage/provider.py
"""
Key Store contract consumed by the Zapp core.

The core only needs four operations (save, load, save_device_public_key,
get_device_public_key); the rest mirror what the device app does with its
store (device list management, settings, reset, diagnostics).

A read miss (`load()` returning None) is the expected first-run condition,
not an error.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional

from cryptography.hazmat.primitives.asymmetric import rsa

from zapp_core.codec import (
    deserialize_private_key,
    deserialize_public_key,
    serialize_private_key,
    serialize_public_key,
)
from zapp_core.errors import FormatError
from zapp_core.fingerprint import fingerprint as compute_fingerprint
from zapp_core.keys import KeyPair
from zapp_core.logger import get_logger
from zapp_core.storage.models import DeviceRecord, IdentityRecord
from zapp_core.utils import now_ts

log = get_logger("Zapp.KeyStore")


class KeyStore:
    # Interface
    def save(self, key_pair: KeyPair) -> bool: ...
    def load(self) -> Optional[KeyPair]: ...
    def save_device_public_key(self, fingerprint: str, name: str, key: rsa.RSAPublicKey) -> bool: ...
    def get_device_public_key(self, fingerprint: str) -> Optional[rsa.RSAPublicKey]: ...
    def get_device(self, fingerprint: str) -> Optional[DeviceRecord]: ...
    def list_devices(self) -> List[DeviceRecord]: ...
    def delete_device(self, fingerprint: str) -> bool: ...
    def save_settings(self, settings: Dict[str, Any]) -> bool: ...
    def load_settings(self) -> Dict[str, Any]: ...
    def clear_all(self) -> bool: ...

    def summary(self) -> Dict[str, Any]:
        """
        Diagnostics snapshot. Never includes private key material.
        A corrupt store yields {"error": ..., "generated_at": ...} instead of raising.
        """
        try:
            key_pair = self.load()
            devices = self.list_devices()
            settings_keys = sorted(self.load_settings().keys())
        except FormatError as exc:
            log.error(f"[SUMMARY] could not read key store: {exc}")
            return {"error": f"failed to generate summary: {exc}", "generated_at": now_ts()}
        return {
            "has_key_pair": key_pair is not None,
            "fingerprint": compute_fingerprint(key_pair.public_key) if key_pair else None,
            "linked_devices_count": len(devices),
            "linked_device_names": [d.device_name for d in devices],
            "settings_keys": settings_keys,
            "generated_at": now_ts(),
        }


def identity_record_for(key_pair: KeyPair) -> IdentityRecord:
    return IdentityRecord(
        public_key_b64=serialize_public_key(key_pair.public_key),
        private_key_b64=serialize_private_key(key_pair.private_key),
        fingerprint=compute_fingerprint(key_pair.public_key),
        created_at=now_ts(),
    )


def restore_key_pair(rec: IdentityRecord) -> KeyPair:
    """
    Rebuild the stored pair. Malformed blobs, or halves that do not belong
    together, raise FormatError. A stored fingerprint that no longer matches
    the key is only logged.
    """
    public_key = deserialize_public_key(rec.public_key_b64)
    private_key = deserialize_private_key(rec.private_key_b64)

    if private_key.public_key().public_numbers() != public_key.public_numbers():
        raise FormatError("stored private key does not match stored public key")

    computed = compute_fingerprint(public_key)
    if computed != rec.fingerprint:
        log.warning(f"[LOAD] stored fingerprint {rec.fingerprint} does not match computed {computed}")

    return KeyPair(private_key=private_key, public_key=public_key)


def device_fingerprint_matches(fingerprint: str, key: rsa.RSAPublicKey) -> bool:
    computed = compute_fingerprint(key)
    if computed != fingerprint:
        log.warning(f"[DEVICE] refusing to store key under {fingerprint}: key fingerprint is {computed}")
        return False
    return True
