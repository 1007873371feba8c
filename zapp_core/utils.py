"""
zapp_core.utils
---------------
Lightweight helpers for timestamping, base64 utilities, and canonical JSON serialization.
Strict decoding here keeps malformed wire and storage blobs from slipping through.
"""

from __future__ import annotations
import base64, binascii, json, time, hashlib
from typing import Any, Dict


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")


def b64d(s: str) -> bytes:
    # validate=True rejects characters outside the base64 alphabet instead of skipping them
    try:
        return base64.b64decode(s.encode("ascii"), validate=True)
    except (UnicodeEncodeError, binascii.Error) as exc:
        raise ValueError(f"invalid base64: {exc}") from exc


def now_ts() -> str:
    # RFC3339 / ISO 8601 in UTC, second precision
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def canonical_json(obj: Dict[str, Any]) -> bytes:
    # Deterministic, minimal JSON
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")


def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
