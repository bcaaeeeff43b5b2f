"""
Tests for authentication payloads.
"""
import hashlib

import pytest

from xsession.auth import Credentials, DefaultCredentialResponder
from xsession.utility.exceptions import AuthenticationError

NONCE = bytes(range(20))


def sha1(data):
    return hashlib.sha1(data).digest()


def sha256(data):
    return hashlib.sha256(data).digest()


def xor(left, right):
    return bytes(a ^ b for a, b in zip(left, right))


@pytest.fixture
def responder():
    return DefaultCredentialResponder()


@pytest.fixture
def credentials():
    return Credentials(user="app", password="secret", schema="shop")


def test_plain_payload(responder, credentials):
    """Test that PLAIN sends schema, user and password in clear."""
    payload = responder.respond("PLAIN", b"", credentials)

    assert payload == b"shop\0app\0secret"


def test_plain_without_schema(responder):
    payload = responder.respond("PLAIN", b"", Credentials(user="app", password="pw"))

    assert payload == b"\0app\0pw"


def test_mysql41_payload(responder, credentials):
    """Test the SHA-1 scramble against the server nonce."""
    stage1 = sha1(b"secret")
    expected = xor(stage1, sha1(NONCE + sha1(stage1)))

    payload = responder.respond("MYSQL41", NONCE, credentials)

    schema, user, secret = payload.split(b"\0")
    assert schema == b"shop"
    assert user == b"app"
    assert secret == b"*" + expected.hex().upper().encode()


def test_mysql41_empty_password(responder):
    """Test that an account without password sends an empty scramble."""
    payload = responder.respond("MYSQL41", NONCE, Credentials(user="app"))

    assert payload == b"\0app\0"


def test_sha256_memory_payload(responder, credentials):
    """Test the SHA-256 scramble against the server nonce."""
    stage1 = sha256(b"secret")
    expected = xor(sha256(sha256(stage1) + NONCE), stage1)

    payload = responder.respond("SHA256_MEMORY", NONCE, credentials)

    assert payload.split(b"\0")[2] == expected.hex().encode()


def test_scramble_depends_on_nonce(responder, credentials):
    other = bytes(reversed(NONCE))

    first = responder.respond("SHA256_MEMORY", NONCE, credentials)
    second = responder.respond("SHA256_MEMORY", other, credentials)

    assert first != second


@pytest.mark.parametrize("mechanism", ["MYSQL41", "SHA256_MEMORY"])
def test_bad_nonce_length(responder, credentials, mechanism):
    with pytest.raises(AuthenticationError, match="expected 20 bytes, received 8"):
        responder.respond(mechanism, b"12345678", credentials)


def test_unknown_mechanism(responder, credentials):
    with pytest.raises(AuthenticationError, match="KERBEROS"):
        responder.respond("KERBEROS", b"", credentials)


def test_password_not_in_repr(credentials):
    """Test that credentials never print the password."""
    assert "secret" not in repr(credentials)
