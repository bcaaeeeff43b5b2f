"""
Choosing and running an authentication mechanism for a new connection.
"""
from typing import Optional, Sequence

from xsession.messages import get_logger
from xsession.protocol.channel import Channel
from xsession.utility.errors import (
    ER_ACCESS_DENIED_ERROR,
    ER_DEVAPI_AUTH_FALLBACK_FAILED,
    ER_DEVAPI_AUTH_INSECURE_PLAIN,
    ER_DEVAPI_AUTH_MECHANISM_NOT_SUPPORTED,
    message_for,
)
from xsession.utility.exceptions import AuthenticationError, ServerError

from .mechanisms import AuthMechanism, CachedProof, ClearText, HashedChallenge
from .responders import CredentialResponder, Credentials, DefaultCredentialResponder


class AuthenticationNegotiator:
    """
    Picks the mechanism for a handshake and runs it.

    Selection:
    - An explicitly configured mechanism always wins, but PLAIN is refused
      on a channel that is neither TLS nor a local socket, and a mechanism
      the server does not advertise is refused up front.
    - Otherwise PLAIN on a confidential channel and MYSQL41 elsewhere.
    - When the inferred MYSQL41 is denied and the server offers
      SHA256_MEMORY, the handshake is retried once with SHA256_MEMORY.

    Every failure is an AuthenticationError. Authentication problems are not
    connectivity problems, so the caller never moves on to another endpoint.
    """

    def __init__(self, responder: Optional[CredentialResponder] = None):
        self.responder = responder or DefaultCredentialResponder()
        self.logger = get_logger("xsession.auth")

    def select(
        self,
        channel: Channel,
        explicit: Optional[str] = None,
        server_mechanisms: Optional[Sequence[str]] = None,
    ) -> AuthMechanism:
        """
        Decide which mechanism to use, without touching the network.

        Raises:
            AuthenticationError: If the explicit mechanism cannot be used
        """
        if not explicit:
            return ClearText() if channel.is_confidential else HashedChallenge()

        mechanism = AuthMechanism.get(explicit)
        if mechanism.requires_confidential_channel and not channel.is_confidential:
            raise AuthenticationError(
                message_for(ER_DEVAPI_AUTH_INSECURE_PLAIN),
                ER_DEVAPI_AUTH_INSECURE_PLAIN,
            )

        # PLAIN is always available, whether advertised or not
        if server_mechanisms is not None and not isinstance(mechanism, ClearText):
            if mechanism.name not in server_mechanisms:
                raise AuthenticationError(
                    message_for(ER_DEVAPI_AUTH_MECHANISM_NOT_SUPPORTED, mechanism.name),
                    ER_DEVAPI_AUTH_MECHANISM_NOT_SUPPORTED,
                )
        return mechanism

    async def authenticate(
        self,
        channel: Channel,
        credentials: Credentials,
        explicit: Optional[str] = None,
        server_mechanisms: Optional[Sequence[str]] = None,
    ) -> AuthMechanism:
        """
        Authenticate ``credentials`` on ``channel``.

        Args:
            channel: Open channel right after capability negotiation
            credentials: Account to authenticate
            explicit: Configured mechanism name, if any
            server_mechanisms: Mechanisms the server advertised, if known

        Returns:
            The mechanism that succeeded

        Raises:
            AuthenticationError: If authentication fails
        """
        mechanism = self.select(channel, explicit, server_mechanisms)
        self.logger.debug(
            f"Authenticating '{credentials.user}' with {mechanism.name} "
            f"on {channel.endpoint}"
        )

        try:
            await mechanism.exchange(channel, credentials, self.responder)
            return mechanism
        except ServerError as e:
            if not self._can_fall_back(e, mechanism, explicit, server_mechanisms):
                raise AuthenticationError(
                    e.message, e.code, sql_state=e.sql_state
                ) from e
            self.logger.debug(f"{mechanism.name} was denied, trying SHA256_MEMORY")

        fallback = CachedProof()
        try:
            await fallback.exchange(channel, credentials, self.responder)
        except ServerError as e:
            if e.code == ER_ACCESS_DENIED_ERROR:
                raise AuthenticationError(
                    message_for(ER_DEVAPI_AUTH_FALLBACK_FAILED), ER_ACCESS_DENIED_ERROR
                ) from e
            raise AuthenticationError(e.message, e.code, sql_state=e.sql_state) from e
        return fallback

    @staticmethod
    def _can_fall_back(error, mechanism, explicit, server_mechanisms) -> bool:
        return (
            not explicit
            and isinstance(mechanism, HashedChallenge)
            and error.code == ER_ACCESS_DENIED_ERROR
            and server_mechanisms is not None
            and CachedProof.name in server_mechanisms
        )
