from __future__ import annotations
from typing import Optional, Dict, Any, List
import json, sqlite3, os, threading

from cryptography.hazmat.primitives.asymmetric import rsa

from zapp_core.codec import deserialize_public_key, serialize_public_key
from zapp_core.constants import DEFAULT_DB_PATH
from zapp_core.keys import KeyPair
from zapp_core.logger import get_logger
from zapp_core.storage.models import DeviceRecord, IdentityRecord
from zapp_core.storage.provider import (
    KeyStore,
    device_fingerprint_matches,
    identity_record_for,
    restore_key_pair,
)
from zapp_core.utils import now_ts

log = get_logger("Zapp.KeyStore.SQLite")


class SQLiteKeyStore(KeyStore):
    def __init__(self, path=DEFAULT_DB_PATH):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.path = path
        self.db = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.RLock()

        self._init()

    def _init(self) -> None:
        c = self.db.cursor()

        # single-row table: one identity per device
        c.execute("""CREATE TABLE IF NOT EXISTS identity(
            id INTEGER PRIMARY KEY CHECK (id = 1),
            public_key_b64 TEXT NOT NULL,
            private_key_b64 TEXT NOT NULL,
            fingerprint TEXT NOT NULL,
            created_at TEXT
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS linked_devices(
            fingerprint TEXT PRIMARY KEY,
            device_name TEXT NOT NULL,
            public_key_b64 TEXT NOT NULL,
            date_added TEXT
        )""")
        c.execute("""CREATE TABLE IF NOT EXISTS settings(
            id INTEGER PRIMARY KEY CHECK (id = 1),
            payload TEXT NOT NULL
        )""")

        self.db.commit()

    def _write(self, action: str, sql: str, params: tuple) -> bool:
        with self._lock:
            try:
                self.db.execute(sql, params)
                self.db.commit()
                return True
            except sqlite3.Error as e:
                self.db.rollback()
                log.exception(f"[{action}] SQLite write failed: {e}")
                return False

    # --- Local identity ---

    def save(self, key_pair: KeyPair) -> bool:
        rec = identity_record_for(key_pair)
        ok = self._write(
            "SAVE",
            "INSERT INTO identity(id,public_key_b64,private_key_b64,fingerprint,created_at) VALUES(1,?,?,?,?) "
            "ON CONFLICT(id) DO UPDATE SET public_key_b64=excluded.public_key_b64, "
            "private_key_b64=excluded.private_key_b64, fingerprint=excluded.fingerprint, "
            "created_at=excluded.created_at",
            (rec.public_key_b64, rec.private_key_b64, rec.fingerprint, rec.created_at),
        )
        if ok:
            log.info(f"[SAVE] key pair saved with fingerprint {rec.fingerprint}")
        return ok

    def load(self) -> Optional[KeyPair]:
        with self._lock:
            cur = self.db.execute(
                "SELECT public_key_b64,private_key_b64,fingerprint,created_at FROM identity WHERE id=1"
            )
            row = cur.fetchone()
        if not row:
            log.info("[LOAD] no key pair in store")
            return None
        return restore_key_pair(IdentityRecord(*row))

    # --- Linked devices ---

    def save_device_public_key(self, fingerprint: str, name: str, key: rsa.RSAPublicKey) -> bool:
        if not device_fingerprint_matches(fingerprint, key):
            return False
        ok = self._write(
            "DEVICE",
            "INSERT INTO linked_devices(fingerprint,device_name,public_key_b64,date_added) VALUES(?,?,?,?) "
            "ON CONFLICT(fingerprint) DO UPDATE SET device_name=excluded.device_name, "
            "public_key_b64=excluded.public_key_b64, date_added=excluded.date_added",
            (fingerprint, name, serialize_public_key(key), now_ts()),
        )
        if ok:
            log.info(f"[DEVICE] linked device {name!r} ({fingerprint})")
        return ok

    def get_device(self, fingerprint: str) -> Optional[DeviceRecord]:
        with self._lock:
            cur = self.db.execute(
                "SELECT fingerprint,device_name,public_key_b64,date_added FROM linked_devices WHERE fingerprint=?",
                (fingerprint,),
            )
            row = cur.fetchone()
        return DeviceRecord(*row) if row else None

    def get_device_public_key(self, fingerprint: str) -> Optional[rsa.RSAPublicKey]:
        rec = self.get_device(fingerprint)
        if rec is None:
            return None
        return deserialize_public_key(rec.public_key_b64)

    def list_devices(self) -> List[DeviceRecord]:
        with self._lock:
            cur = self.db.execute(
                "SELECT fingerprint,device_name,public_key_b64,date_added FROM linked_devices ORDER BY date_added, fingerprint"
            )
            rows = cur.fetchall()
        return [DeviceRecord(*r) for r in rows]

    def delete_device(self, fingerprint: str) -> bool:
        with self._lock:
            try:
                cur = self.db.execute("DELETE FROM linked_devices WHERE fingerprint=?", (fingerprint,))
                self.db.commit()
            except sqlite3.Error as e:
                self.db.rollback()
                log.exception(f"[DEVICE] SQLite write failed: {e}")
                return False
            removed = cur.rowcount > 0
        if not removed:
            log.info(f"[DEVICE] no linked device with fingerprint {fingerprint}")
        return removed

    # --- Settings ---

    def save_settings(self, settings: Dict[str, Any]) -> bool:
        return self._write(
            "SETTINGS",
            "INSERT INTO settings(id,payload) VALUES(1,?) ON CONFLICT(id) DO UPDATE SET payload=excluded.payload",
            (json.dumps(settings, sort_keys=True),),
        )

    def load_settings(self) -> Dict[str, Any]:
        with self._lock:
            row = self.db.execute("SELECT payload FROM settings WHERE id=1").fetchone()
        return json.loads(row[0]) if row else {}

    def clear_all(self) -> bool:
        with self._lock:
            try:
                self.db.execute("DELETE FROM identity")
                self.db.execute("DELETE FROM linked_devices")
                self.db.execute("DELETE FROM settings")
                self.db.commit()
            except sqlite3.Error as e:
                self.db.rollback()
                log.exception(f"[CLEAR] SQLite write failed: {e}")
                return False
        log.info("[CLEAR] all key store data removed")
        return True

    def close(self):
        self.db.close()
