"""
zapp_core.codec
---------------
Portable string format for RSA keys, as stored by the Key Store and handed
over by the pairing channel:

    public:  base64(JSON{modulus, exponent, keyType, version})
    private: base64(JSON{modulus, privateExponent, p, q, keyType, version})

Integers are decimal strings. The JSON is canonical (sorted keys, compact
separators), so serializing the same key always yields the same string;
fingerprints depend on that.

Private blobs carry no CRT coefficients or public exponent. Both are
recomputed on load.
"""

from __future__ import annotations
from typing import Any, Dict, Union
import json, math

from cryptography.hazmat.primitives.asymmetric import rsa

from .constants import KEY_TYPE_RSA, KEY_FORMAT_VERSION, RSA_MAX_BITS
from .errors import FormatError
from .utils import b64e, b64d, canonical_json

PRIVATE_FIELDS = ("privateExponent", "p", "q")

# decimal digits of the largest supported modulus
MAX_FIELD_DIGITS = len(str(1 << RSA_MAX_BITS))

RSAKey = Union[rsa.RSAPublicKey, rsa.RSAPrivateKey]


# --------- Serialize ----------
def serialize_public_key(public_key: rsa.RSAPublicKey) -> str:
    _check_size(public_key.key_size)
    numbers = public_key.public_numbers()
    return _encode({
        "modulus": str(numbers.n),
        "exponent": str(numbers.e),
        "keyType": KEY_TYPE_RSA,
        "version": KEY_FORMAT_VERSION,
    })


def serialize_private_key(private_key: rsa.RSAPrivateKey) -> str:
    _check_size(private_key.key_size)
    numbers = private_key.private_numbers()
    return _encode({
        "modulus": str(numbers.public_numbers.n),
        "privateExponent": str(numbers.d),
        "p": str(numbers.p),
        "q": str(numbers.q),
        "keyType": KEY_TYPE_RSA,
        "version": KEY_FORMAT_VERSION,
    })


def serialize_key(key: RSAKey) -> str:
    if isinstance(key, rsa.RSAPrivateKey):
        return serialize_private_key(key)
    if isinstance(key, rsa.RSAPublicKey):
        return serialize_public_key(key)
    raise TypeError(f"unsupported key type: {type(key).__name__}")


def _check_size(key_size: int) -> None:
    if key_size > RSA_MAX_BITS:
        raise FormatError(f"RSA-{key_size} keys exceed the {RSA_MAX_BITS}-bit key format limit")


def _encode(fields: Dict[str, str]) -> str:
    return b64e(canonical_json(fields))


# --------- Deserialize ----------
def deserialize_public_key(blob: str) -> rsa.RSAPublicKey:
    data = _decode(blob)
    n = _int_field(data, "modulus")
    e = _int_field(data, "exponent")
    try:
        return rsa.RSAPublicNumbers(e, n).public_key()
    except ValueError as exc:
        raise FormatError(f"invalid RSA public key: {exc}") from exc


def deserialize_private_key(blob: str) -> rsa.RSAPrivateKey:
    data = _decode(blob)
    n = _int_field(data, "modulus")
    d = _int_field(data, "privateExponent")
    p = _int_field(data, "p")
    q = _int_field(data, "q")

    if p < 3 or q < 3 or p * q != n:
        raise FormatError("invalid RSA private key: modulus is not p*q")

    # e*d == 1 mod lambda(n), so e can be recovered from d
    lam = math.lcm(p - 1, q - 1)
    try:
        e = pow(d, -1, lam)
    except ValueError as exc:
        raise FormatError("invalid RSA private key: private exponent not invertible") from exc

    try:
        return rsa.RSAPrivateNumbers(
            p=p,
            q=q,
            d=d,
            dmp1=rsa.rsa_crt_dmp1(d, p),
            dmq1=rsa.rsa_crt_dmq1(d, q),
            iqmp=rsa.rsa_crt_iqmp(p, q),
            public_numbers=rsa.RSAPublicNumbers(e, n),
        ).private_key()
    except ValueError as exc:
        raise FormatError(f"invalid RSA private key: {exc}") from exc


def deserialize_key(blob: str) -> RSAKey:
    """Load either half; private blobs are recognised by their private fields."""
    data = _decode(blob)
    if any(field in data for field in PRIVATE_FIELDS):
        return deserialize_private_key(blob)
    return deserialize_public_key(blob)


def is_private_blob(blob: str) -> bool:
    data = _decode(blob)
    return any(field in data for field in PRIVATE_FIELDS)


def _decode(blob: str) -> Dict[str, Any]:
    if not isinstance(blob, str):
        raise FormatError(f"serialized key must be str, got {type(blob).__name__}")
    try:
        data = json.loads(b64d(blob).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise FormatError(f"serialized key is not base64 JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise FormatError("serialized key must be a JSON object")
    if data.get("keyType") != KEY_TYPE_RSA:
        raise FormatError(f"unsupported keyType: {data.get('keyType')!r}")
    if data.get("version") != KEY_FORMAT_VERSION:
        raise FormatError(f"unsupported key format version: {data.get('version')!r}")
    return data


def _int_field(data: Dict[str, Any], name: str) -> int:
    value = data.get(name)
    if value is None:
        raise FormatError(f"serialized key is missing {name!r}")
    if not isinstance(value, str) or not value.isascii() or not value.isdigit():
        raise FormatError(f"field {name!r} is not a decimal string")
    if len(value) > MAX_FIELD_DIGITS:
        raise FormatError(f"field {name!r} exceeds {RSA_MAX_BITS}-bit key size")
    try:
        return int(value)
    except ValueError as exc:
        raise FormatError(f"field {name!r} is not a decimal integer: {exc}") from exc
