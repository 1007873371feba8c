# zapp_core/constants.py

# wire format
ENVELOPE_VERSION = "1.0"
SUPPORTED_ENVELOPE_VERSIONS = (ENVELOPE_VERSION,)

WIRE_FIELD_WRAPPED_KEY = "encryptedAesKey"
WIRE_FIELD_CIPHERTEXT = "encryptedContent"
WIRE_FIELD_IV = "iv"
WIRE_FIELD_SIGNATURE = "signature"
WIRE_FIELD_VERSION = "version"

# key storage format
KEY_TYPE_RSA = "RSA"
KEY_FORMAT_VERSION = "1.0"

# RSA parameters
RSA_PUBLIC_EXPONENT = 65537
RSA_DEFAULT_BITS = 2048
RSA_MIN_BITS = 2048
RSA_MAX_BITS = 8192

# AES-GCM parameters (bytes)
AES_KEY_LEN = 32
AES_GCM_IV_LEN = 12
AES_GCM_TAG_LEN = 16

# config defaults
DEFAULT_STORAGE_PROVIDER = "sqlite"
DEFAULT_DB_PATH = "db/zapp_keystore.db"
