"""
Computing authentication payloads from credentials and server challenges.
"""
import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from xsession.connections.constants import CONNECTION_DEFAULTS
from xsession.utility.exceptions import AuthenticationError


@dataclass(frozen=True)
class Credentials:
    """Account name, password and default schema for one handshake."""

    user: str = ""
    password: Optional[str] = field(default=None, repr=False)
    schema: Optional[str] = None


class CredentialResponder(ABC):
    """
    Produces the bytes sent in an authentication step.

    Responders see the mechanism name and the server challenge (empty for
    single-step mechanisms) and return the payload for the next frame.
    """

    @abstractmethod
    def respond(
        self, mechanism: str, challenge: bytes, credentials: Credentials
    ) -> bytes:
        """Compute the payload for ``mechanism``."""
        pass


def _xor(left: bytes, right: bytes) -> bytes:
    return bytes(a ^ b for a, b in zip(left, right))


def _sha1(*parts: bytes) -> bytes:
    digest = hashlib.sha1()
    for part in parts:
        digest.update(part)
    return digest.digest()


def _sha256(*parts: bytes) -> bytes:
    digest = hashlib.sha256()
    for part in parts:
        digest.update(part)
    return digest.digest()


class DefaultCredentialResponder(CredentialResponder):
    """
    Payloads for PLAIN, MYSQL41 and SHA256_MEMORY.

    Every payload has the shape ``schema\\0user\\0secret`` where ``secret``
    is the clear-text password (PLAIN), or a hex scramble of the password
    and the server nonce (MYSQL41 with SHA-1, SHA256_MEMORY with SHA-256).
    """

    def respond(
        self, mechanism: str, challenge: bytes, credentials: Credentials
    ) -> bytes:
        password = (credentials.password or "").encode("utf-8")

        if mechanism == "PLAIN":
            secret = password
        elif mechanism == "MYSQL41":
            self._check_nonce(challenge)
            secret = b""
            if password:
                scramble = self.mysql41_scramble(password, challenge)
                secret = b"*" + scramble.hex().upper().encode()
        elif mechanism == "SHA256_MEMORY":
            self._check_nonce(challenge)
            secret = self.sha256_scramble(password, challenge).hex().encode()
        else:
            raise AuthenticationError(f"{mechanism} authentication is not supported.")

        return b"\0".join(
            [
                (credentials.schema or "").encode("utf-8"),
                credentials.user.encode("utf-8"),
                secret,
            ]
        )

    @staticmethod
    def mysql41_scramble(password: bytes, nonce: bytes) -> bytes:
        """SHA1(password) XOR SHA1(nonce + SHA1(SHA1(password)))."""
        stage1 = _sha1(password)
        return _xor(stage1, _sha1(nonce, _sha1(stage1)))

    @staticmethod
    def sha256_scramble(password: bytes, nonce: bytes) -> bytes:
        """SHA256(SHA256(SHA256(password)) + nonce) XOR SHA256(password)."""
        stage1 = _sha256(password)
        return _xor(_sha256(_sha256(stage1), nonce), stage1)

    @staticmethod
    def _check_nonce(nonce: bytes) -> None:
        expected = CONNECTION_DEFAULTS.nonce_size
        if len(nonce) != expected:
            raise AuthenticationError(
                f"Invalid nonce length - expected {expected} bytes, "
                f"received {len(nonce)}"
            )
