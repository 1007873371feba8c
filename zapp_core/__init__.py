"""
Zapp Core Package
=================
Hybrid public-key envelope shared by paired Zapp devices.

Provides:
- RSA key pair generation and portable key serialization
- Public key fingerprints (device identity)
- Sealed envelopes: AES-256-GCM content, RSA-OAEP key wrap, RSA signature
- Pluggable Key Store interface (SQLite default)
"""
from zapp_core.keys import KeyPair, generate_keypair
from zapp_core.codec import (
    serialize_public_key, serialize_private_key, serialize_key,
    deserialize_public_key, deserialize_private_key, deserialize_key,
)
from zapp_core.fingerprint import fingerprint
from zapp_core.envelope import Envelope
from zapp_core.builder import EnvelopeBuilder, seal_envelope
from zapp_core.parser import EnvelopeParser, OpenResult, ParseState, open_envelope
from zapp_core.errors import (
    ZappCryptoError, KeyGenerationError, FormatError, VersionError,
    AuthenticityError, KeyUnwrapError, AuthenticationError,
)
from zapp_core.identity import DeviceIdentity, ensure_device_identity, link_device
from zapp_core.storage import KeyStore, SQLiteKeyStore, InMemoryKeyStore, load_key_store

__version__ = "0.1.0"
