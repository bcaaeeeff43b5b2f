"""
Authentication mechanisms.

The set of mechanisms is closed: ``PLAIN``, ``MYSQL41`` and
``SHA256_MEMORY``. Each is a subclass of AuthMechanism registered under its
wire name, and all share the same ``exchange`` contract so the negotiator
can pick one without knowing how its handshake goes.
"""
from abc import ABC, abstractmethod
from typing import Dict, Type

from xsession.protocol.channel import Channel
from xsession.protocol.messages import (
    AuthenticateContinue,
    AuthenticateContinueChallenge,
    AuthenticateOk,
    AuthenticateStart,
)
from xsession.utility.exceptions import AuthenticationError

from .responders import CredentialResponder, Credentials


class AuthMechanism(ABC):
    """
    Base class for authentication mechanisms.

    Subclasses register themselves by passing ``name=`` in the class
    statement; ``AuthMechanism.get(name)`` returns an instance.
    """

    _registry: Dict[str, Type["AuthMechanism"]] = {}

    name: str = ""
    # Whether the secret travels in clear text
    requires_confidential_channel: bool = False

    def __init_subclass__(cls, name: str = None):
        super().__init_subclass__()
        if name:
            cls.name = name
            cls._registry[name] = cls

    @classmethod
    def get(cls, name: str) -> "AuthMechanism":
        """
        Get the mechanism registered under ``name``.

        Raises:
            AuthenticationError: If no such mechanism exists
        """
        mechanism = cls._registry.get(name.upper())
        if mechanism is None:
            raise AuthenticationError(f"Unknown authentication mechanism '{name}'")
        return mechanism()

    @classmethod
    def names(cls):
        return list(cls._registry)

    @abstractmethod
    async def exchange(
        self, channel: Channel, credentials: Credentials, responder: CredentialResponder
    ) -> None:
        """
        Run the handshake on ``channel``.

        Raises:
            ServerError: If the server rejects the credentials
        """
        pass

    def __eq__(self, other) -> bool:
        return isinstance(other, AuthMechanism) and other.name == self.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


async def _expect_ok(channel: Channel) -> None:
    reply = await channel.receive()
    if not isinstance(reply, AuthenticateOk):
        raise AuthenticationError(
            f"Unexpected reply during authentication: {type(reply).__name__}"
        )


class ClearText(AuthMechanism, name="PLAIN"):
    """Single step: the password is sent as is, so only on TLS or a local socket."""

    requires_confidential_channel = True

    async def exchange(self, channel, credentials, responder):
        auth_data = responder.respond(self.name, b"", credentials)
        await channel.send(AuthenticateStart(self.name, auth_data=auth_data))
        await _expect_ok(channel)


class _ChallengeResponse(AuthMechanism):
    """Two steps: the server sends a nonce, the client answers with a scramble."""

    async def exchange(self, channel, credentials, responder):
        challenge = await channel.request(AuthenticateStart(self.name))
        if not isinstance(challenge, AuthenticateContinueChallenge):
            raise AuthenticationError(
                f"Expected an authentication challenge, got {type(challenge).__name__}"
            )
        auth_data = responder.respond(self.name, challenge.auth_data, credentials)
        await channel.send(AuthenticateContinue(auth_data))
        await _expect_ok(channel)


class HashedChallenge(_ChallengeResponse, name="MYSQL41"):
    """SHA-1 challenge/response against the stored password hash."""

    pass


class CachedProof(_ChallengeResponse, name="SHA256_MEMORY"):
    """
    SHA-256 challenge/response against the server's in-memory cache.

    Only succeeds once the account has authenticated over a secure channel
    since the server started; otherwise the server answers access denied.
    """

    pass
