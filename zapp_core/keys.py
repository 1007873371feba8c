"""
zapp_core.keys
--------------
RSA key pair generation for a device identity.

Keys come from the OpenSSL backend of `cryptography`, which seeds its CSPRNG
from the operating system and runs the FIPS 186-4 Miller-Rabin round count
(at least 64 rounds for 2048-bit moduli) during prime search. The backend
RNG is thread-safe, so concurrent callers need no extra locking.
"""

from __future__ import annotations
from dataclasses import dataclass

from cryptography.hazmat.primitives.asymmetric import rsa

from .constants import RSA_DEFAULT_BITS, RSA_MAX_BITS, RSA_MIN_BITS, RSA_PUBLIC_EXPONENT
from .errors import KeyGenerationError
from .logger import get_logger

log = get_logger("Zapp.Keys")


@dataclass(frozen=True)
class KeyPair:
    private_key: rsa.RSAPrivateKey
    public_key: rsa.RSAPublicKey

    @property
    def bit_length(self) -> int:
        return self.public_key.key_size


def generate_keypair(bit_length: int = RSA_DEFAULT_BITS) -> KeyPair:
    """
    Generate an RSA key pair with public exponent 65537.

    Raises KeyGenerationError if the size is unsupported or the backend
    cannot complete the prime search.
    """
    if not isinstance(bit_length, int) or not RSA_MIN_BITS <= bit_length <= RSA_MAX_BITS:
        raise KeyGenerationError(
            f"RSA key size must be an integer in [{RSA_MIN_BITS}, {RSA_MAX_BITS}], got {bit_length!r}"
        )

    try:
        private_key = rsa.generate_private_key(public_exponent=RSA_PUBLIC_EXPONENT, key_size=bit_length)
    except (ValueError, TypeError, MemoryError) as exc:
        raise KeyGenerationError(f"RSA key generation failed: {exc}") from exc

    log.info(f"[KEYGEN] generated RSA-{bit_length} key pair")
    return KeyPair(private_key=private_key, public_key=private_key.public_key())
