# zapp_core/storage/models.py
from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict


@dataclass
class IdentityRecord:
    """
    Storage-level representation of this device's key pair.

    Keys are held in the portable codec format (see zapp_core.codec), so any
    provider (SQLite, memory, keychain, etc.) can persist them as plain text.
    """
    public_key_b64: str
    private_key_b64: str
    fingerprint: str
    created_at: str = ""


@dataclass
class DeviceRecord:
    """A linked peer device, keyed by the fingerprint of its public key."""
    fingerprint: str
    device_name: str
    public_key_b64: str
    date_added: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
