import dataclasses
import json
from concurrent.futures import ThreadPoolExecutor

import pytest

from zapp_core.builder import EnvelopeBuilder, seal_envelope
from zapp_core.crypto import rsa_sign
from zapp_core.envelope import Envelope
from zapp_core.errors import (
    AuthenticationError,
    AuthenticityError,
    FormatError,
    KeyUnwrapError,
    VersionError,
)
from zapp_core.parser import EnvelopeParser, ParseState, open_envelope

MESSAGE = "Hello from Zapp! This is a test encrypted message."


def _flip_bit(data: bytes, index: int = 0, bit: int = 0) -> bytes:
    buf = bytearray(data)
    buf[index] ^= 1 << bit
    return bytes(buf)


def test_seal_open_scenario(sender, recipient):
    env = seal_envelope(MESSAGE, recipient.public_key, sender.private_key)
    assert env.version == "1.0"

    wire = env.to_json()
    plaintext = open_envelope(wire, recipient.private_key, sender.public_key)
    assert plaintext.decode("utf-8") == MESSAGE


def test_round_trip_binary_and_empty(sender, recipient):
    parser = EnvelopeParser(recipient.private_key, sender.public_key)
    for message in (b"", b"\x00\xff" * 1000, "snowman ☃".encode("utf-8")):
        env = seal_envelope(message, recipient.public_key, sender.private_key)
        assert parser.open(env) == message
        assert parser.state is ParseState.DECRYPTED


def test_envelope_wire_fields(sender, recipient):
    env = seal_envelope(MESSAGE, recipient.public_key, sender.private_key)
    wire = json.loads(env.to_json())

    assert set(wire) == {"encryptedAesKey", "encryptedContent", "iv", "signature", "version"}
    assert wire["version"] == "1.0"
    assert len(env.iv) == 12
    assert len(env.wrapped_key) == 256          # RSA-2048 block
    assert len(env.ciphertext) == len(MESSAGE) + 16
    assert Envelope.from_json(env.to_json()) == env
    assert env.to_signing_bytes() == env.ciphertext + env.iv + env.wrapped_key


def test_fresh_material_per_envelope(sender, recipient):
    a = seal_envelope(MESSAGE, recipient.public_key, sender.private_key)
    b = seal_envelope(MESSAGE, recipient.public_key, sender.private_key)
    assert a.iv != b.iv
    assert a.ciphertext != b.ciphertext
    assert a.wrapped_key != b.wrapped_key


def test_builder_uses_given_random_source(sender, recipient):
    requested = []

    def spy(n):
        requested.append(n)
        return bytes(range(n))

    env = EnvelopeBuilder(random_bytes=spy).seal(b"payload", recipient.public_key, sender.private_key)
    assert requested == [32, 12]
    assert env.iv == bytes(range(12))


@pytest.mark.parametrize("field", ["ciphertext", "iv", "wrapped_key", "signature"])
@pytest.mark.parametrize("position", ["first", "last"])
def test_single_bit_tamper_is_rejected(sender, recipient, field, position):
    env = seal_envelope(MESSAGE, recipient.public_key, sender.private_key)
    original = getattr(env, field)
    index = 0 if position == "first" else len(original) - 1
    tampered = dataclasses.replace(env, **{field: _flip_bit(original, index, bit=3)})

    parser = EnvelopeParser(recipient.private_key, sender.public_key)
    with pytest.raises((AuthenticityError, AuthenticationError)):
        parser.open(tampered)
    assert parser.state is ParseState.REJECTED


def test_corrupt_wrapped_key_fails_signature_before_unwrap(sender, recipient, monkeypatch):
    env = seal_envelope(MESSAGE, recipient.public_key, sender.private_key)
    tampered = dataclasses.replace(env, wrapped_key=_flip_bit(env.wrapped_key, 10))

    def unwrap_must_not_run(*args, **kwargs):
        raise AssertionError("unwrap reached after failed signature check")

    monkeypatch.setattr("zapp_core.parser.rsa_unwrap_key", unwrap_must_not_run)

    with pytest.raises(AuthenticityError):
        open_envelope(tampered, recipient.private_key, sender.public_key)


def test_wrong_recipient_key_fails_unwrap(sender, recipient, stranger):
    env = seal_envelope(MESSAGE, recipient.public_key, sender.private_key)
    parser = EnvelopeParser(stranger.private_key, sender.public_key)

    with pytest.raises(KeyUnwrapError):
        parser.open(env)
    assert parser.state is ParseState.REJECTED


def test_wrong_sender_key_fails_authenticity(sender, recipient, stranger):
    env = seal_envelope(MESSAGE, recipient.public_key, sender.private_key)
    with pytest.raises(AuthenticityError):
        open_envelope(env, recipient.private_key, stranger.public_key)


def test_signed_but_corrupt_ciphertext_fails_tag(sender, recipient):
    # a sender that signs garbage still cannot get past the GCM tag
    env = seal_envelope(MESSAGE, recipient.public_key, sender.private_key)
    bad_ct = _flip_bit(env.ciphertext, 0)
    resigned = dataclasses.replace(
        env,
        ciphertext=bad_ct,
        signature=rsa_sign(sender.private_key, bad_ct + env.iv + env.wrapped_key),
    )
    with pytest.raises(AuthenticationError):
        open_envelope(resigned, recipient.private_key, sender.public_key)


def test_try_open_reports_error_kind(sender, recipient, stranger):
    env = seal_envelope(MESSAGE, recipient.public_key, sender.private_key)

    ok = EnvelopeParser(recipient.private_key, sender.public_key).try_open(env)
    assert ok.ok and ok.plaintext == MESSAGE.encode() and ok.error_kind is None

    bad = EnvelopeParser(recipient.private_key, stranger.public_key).try_open(env)
    assert not bad.ok
    assert bad.plaintext is None
    assert bad.state is ParseState.REJECTED
    assert bad.error_kind == "authenticity"


def test_unsupported_version(sender, recipient):
    env = seal_envelope(MESSAGE, recipient.public_key, sender.private_key)
    wire = env.to_dict()
    wire["version"] = "2.0"

    with pytest.raises(VersionError):
        open_envelope(wire, recipient.private_key, sender.public_key)
    with pytest.raises(VersionError):
        open_envelope(dataclasses.replace(env, version="0.9"), recipient.private_key, sender.public_key)


def test_version_checked_before_field_decoding():
    wire = {
        "encryptedAesKey": "***",
        "encryptedContent": "***",
        "iv": "***",
        "signature": "***",
        "version": "9.9",
    }
    with pytest.raises(VersionError):
        Envelope.from_dict(wire)


@pytest.mark.parametrize("mutate", [
    lambda d: d.pop("signature"),
    lambda d: d.update(extra="x"),
    lambda d: d.update(iv="not base64!"),
    lambda d: d.update(iv="AAAA"),
    lambda d: d.update(encryptedContent=123),
    lambda d: d.update(version=1.0),
])
def test_malformed_wire_is_format_error(sender, recipient, mutate):
    wire = seal_envelope(MESSAGE, recipient.public_key, sender.private_key).to_dict()
    mutate(wire)
    with pytest.raises(FormatError):
        open_envelope(wire, recipient.private_key, sender.public_key)


@pytest.mark.parametrize("raw", ["", "not json", "[1, 2]", b"\xff\xfe", 42])
def test_unparseable_input_is_format_error(sender, recipient, raw):
    with pytest.raises(FormatError):
        open_envelope(raw, recipient.private_key, sender.public_key)


def test_rejection_is_logged_without_key_material(sender, recipient, stranger, caplog):
    env = seal_envelope(MESSAGE, recipient.public_key, sender.private_key)
    with pytest.raises(AuthenticityError):
        open_envelope(env, recipient.private_key, stranger.public_key)

    assert "[OPEN] rejected envelope" in caplog.text
    assert "authenticity" in caplog.text
    assert env.to_dict()["encryptedAesKey"] not in caplog.text


def test_shared_builder_across_threads(sender, recipient):
    builder = EnvelopeBuilder()
    messages = [f"message {i}".encode("utf-8") for i in range(16)]

    def roundtrip(message):
        env = builder.seal(message, recipient.public_key, sender.private_key)
        return env, EnvelopeParser(recipient.private_key, sender.public_key).open(env)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(roundtrip, messages))

    assert [plaintext for _, plaintext in results] == messages
    envelopes = [env for env, _ in results]
    assert len({env.iv for env in envelopes}) == len(messages)
    assert len({env.wrapped_key for env in envelopes}) == len(messages)
