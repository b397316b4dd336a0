# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""Exceptions raised between the Prove adapter, orchestrator and API layer."""

from typing import Optional


class ProveError(Exception):
    """Base exception for Prove verification errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AuthenticationError(ProveError):
    """Access token could not be obtained from the Prove API."""

    @classmethod
    def no_token(cls) -> "AuthenticationError":
        return cls("Failed to obtain access token from Prove API")

    @classmethod
    def short_lifetime(cls, expires_in: int, buffer: int) -> "AuthenticationError":
        return cls(
            f"Access token lifetime {expires_in}s does not exceed expiry buffer {buffer}s"
        )


class VerificationError(ProveError):
    """A start/validate/complete call failed at the transport or HTTP level."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @classmethod
    def no_start_payload(cls) -> "VerificationError":
        return cls("Failed to initiate verification flow")

    @classmethod
    def http_status(cls, operation: str, status_code: int) -> "VerificationError":
        return cls(f"Prove {operation} returned HTTP {status_code}", status_code=status_code)


class ApplicationError(ProveError):
    """Single error surfaced by the orchestrator.

    ``message`` is safe to log but is never returned to the browser;
    ``cause`` keeps the original adapter failure.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
