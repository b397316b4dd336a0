"""Prove API integration: token cache, HTTP adapter and orchestrator."""

from .client import ProveClient
from .environments import ServerEnvironment
from .exceptions import ApplicationError, AuthenticationError, ProveError, VerificationError
from .service import VerificationService, get_verification_service
from .token_cache import CachedToken, TokenCache

__all__ = [
    "ProveClient",
    "ServerEnvironment",
    "ApplicationError",
    "AuthenticationError",
    "ProveError",
    "VerificationError",
    "VerificationService",
    "get_verification_service",
    "CachedToken",
    "TokenCache",
]
