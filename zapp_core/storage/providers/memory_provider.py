from typing import Optional, Dict, Any, List
import copy, threading

from zapp_core.codec import deserialize_public_key, serialize_public_key
from zapp_core.storage.models import DeviceRecord
from zapp_core.storage.provider import (
    KeyStore,
    device_fingerprint_matches,
    identity_record_for,
    restore_key_pair,
)
from zapp_core.utils import now_ts


class InMemoryKeyStore(KeyStore):
    """Process-local store; keeps keys in codec format like the persistent providers."""

    def __init__(self):
        self.identity = None
        self.devices = {}
        self.settings = {}
        self._lock = threading.Lock()

    # local identity
    def save(self, key_pair) -> bool:
        rec = identity_record_for(key_pair)
        with self._lock:
            self.identity = rec
        return True

    def load(self):
        rec = self.identity
        return restore_key_pair(rec) if rec else None

    # linked devices
    def save_device_public_key(self, fingerprint: str, name: str, key) -> bool:
        if not device_fingerprint_matches(fingerprint, key):
            return False
        with self._lock:
            self.devices[fingerprint] = DeviceRecord(
                fingerprint=fingerprint,
                device_name=name,
                public_key_b64=serialize_public_key(key),
                date_added=now_ts(),
            )
        return True

    def get_device(self, fingerprint: str) -> Optional[DeviceRecord]:
        return self.devices.get(fingerprint)

    def get_device_public_key(self, fingerprint: str):
        rec = self.devices.get(fingerprint)
        return deserialize_public_key(rec.public_key_b64) if rec else None

    def list_devices(self) -> List[DeviceRecord]:
        return list(self.devices.values())

    def delete_device(self, fingerprint: str) -> bool:
        with self._lock:
            return self.devices.pop(fingerprint, None) is not None

    # settings
    def save_settings(self, settings: Dict[str, Any]) -> bool:
        with self._lock:
            self.settings = copy.deepcopy(settings)
        return True

    def load_settings(self) -> Dict[str, Any]:
        return copy.deepcopy(self.settings)

    def clear_all(self) -> bool:
        with self._lock:
            self.identity = None
            self.devices.clear()
            self.settings = {}
        return True
