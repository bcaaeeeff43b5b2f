"""
Authentication: mechanisms, credential responders and the negotiator.
"""
from .mechanisms import AuthMechanism, CachedProof, ClearText, HashedChallenge
from .negotiator import AuthenticationNegotiator
from .responders import CredentialResponder, Credentials, DefaultCredentialResponder

__all__ = [
    "AuthMechanism",
    "AuthenticationNegotiator",
    "CachedProof",
    "ClearText",
    "CredentialResponder",
    "Credentials",
    "DefaultCredentialResponder",
    "HashedChallenge",
]
