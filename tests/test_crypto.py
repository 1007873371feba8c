# tests/test_crypto.py
"""
AES-256-GCM engine and RSA primitives.
Focus: correctness of the encrypt/decrypt flow and tamper detection.
"""

import os

import pytest

from zapp_core.crypto import (
    aead_decrypt,
    aead_encrypt,
    generate_symmetric_material,
    rsa_sign,
    rsa_unwrap_key,
    rsa_verify,
    rsa_wrap_key,
    wipe,
)
from zapp_core.errors import AuthenticationError, KeyGenerationError
from zapp_core.keys import generate_keypair


def test_aead_encrypt_decrypt():
    key, iv = os.urandom(32), os.urandom(12)
    data = b"Hello, World!"

    ct = aead_encrypt(key, iv, data)
    assert ct != data
    assert len(ct) == len(data) + 16, "ciphertext should carry a 128-bit tag"
    assert aead_decrypt(key, iv, ct) == data


def test_aead_tamper_and_wrong_inputs():
    key, iv = os.urandom(32), os.urandom(12)
    ct = aead_encrypt(key, iv, b"secret", aad=b"hdr")

    tampered = bytearray(ct)
    tampered[-1] ^= 0xFF
    with pytest.raises(AuthenticationError):
        aead_decrypt(key, iv, bytes(tampered), aad=b"hdr")
    with pytest.raises(AuthenticationError):
        aead_decrypt(key, iv, ct, aad=b"other")
    with pytest.raises(AuthenticationError):
        aead_decrypt(os.urandom(32), iv, ct, aad=b"hdr")
    with pytest.raises(AuthenticationError):
        aead_decrypt(key, os.urandom(12), ct, aad=b"hdr")


@pytest.mark.parametrize("key_len,iv_len", [(16, 12), (24, 12), (32, 16), (32, 8)])
def test_aead_rejects_bad_parameter_sizes(key_len, iv_len):
    with pytest.raises(ValueError):
        aead_encrypt(os.urandom(key_len), os.urandom(iv_len), b"x")


def test_symmetric_material_is_fresh_and_wipeable():
    k1, iv1 = generate_symmetric_material()
    k2, iv2 = generate_symmetric_material()
    assert len(k1) == 32 and len(iv1) == 12
    assert k1 != k2 and iv1 != iv2

    wipe(k1)
    assert k1 == bytearray(32)
    wipe(None)


def test_short_random_source_is_refused():
    with pytest.raises(ValueError):
        generate_symmetric_material(lambda n: b"\x00" * (n - 1))


def test_rsa_wrap_sign(sender, recipient):
    key = os.urandom(32)
    wrapped = rsa_wrap_key(recipient.public_key, key)
    assert len(wrapped) == 256
    assert rsa_unwrap_key(recipient.private_key, wrapped) == key
    with pytest.raises(ValueError):
        rsa_unwrap_key(sender.private_key, wrapped)

    sig = rsa_sign(sender.private_key, b"data")
    assert rsa_verify(sender.public_key, sig, b"data") is True
    assert rsa_verify(sender.public_key, sig, b"date") is False
    assert rsa_verify(recipient.public_key, sig, b"data") is False
    assert rsa_verify(sender.public_key, sig[:-1], b"data") is False


def test_keypair_parameters(sender):
    priv = sender.private_key.private_numbers()
    pub = sender.public_key.public_numbers()

    assert sender.bit_length == 2048
    assert pub.e == 65537
    assert priv.p * priv.q == pub.n
    assert sender.private_key.public_key().public_numbers() == pub


def test_keypairs_are_unique(sender, recipient):
    assert sender.public_key.public_numbers() != recipient.public_key.public_numbers()


@pytest.mark.parametrize("bits", [512, 1024, 2047.5, 8193, 16384, "2048", None])
def test_keygen_rejects_bad_sizes(bits):
    with pytest.raises(KeyGenerationError):
        generate_keypair(bits)
