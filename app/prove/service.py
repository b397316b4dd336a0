# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""Verification orchestrator.

Sequences the three provider calls behind the HTTP layer.  Every public
operation follows the same shape:

1. Obtain a bearer token from the :class:`TokenCache`.
2. Delegate to the :class:`ProveClient` adapter.
3. Translate any adapter failure into one :class:`ApplicationError`
   that keeps the original exception as its cause.
4. Log the failure before re-raising.

Validate and complete report provider-level rejections in band: the
returned dict carries ``success: False`` and a message instead of an
exception.  Only token and transport faults raise.

The orchestrator holds no per-session state.  The correlation id comes
back from ``start`` and is threaded through by the browser; the token
cache is the only state shared between requests.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from app.config import (
    ALLOW_OTP_RETRY,
    CLIENT_IP_PLACEHOLDER,
    FINAL_TARGET_URL,
    PROVE_CLIENT_ID,
    PROVE_CLIENT_SECRET,
    PROVE_SERVER_ENVIRONMENT,
    TOKEN_EXPIRY_BUFFER_SECONDS,
)
from app.prove.client import ProveClient, mask_phone
from app.prove.environments import ServerEnvironment
from app.prove.exceptions import ApplicationError, ProveError
from app.prove.models import (
    CompleteVerificationRequest,
    ProviderAccepted,
    ProviderOutcome,
    ProviderRejected,
    StartVerificationRequest,
    StartVerificationResponse,
    TransportFault,
    ValidateVerificationRequest,
)
from app.prove.token_cache import TokenCache

logger = logging.getLogger("prove.service")

__all__ = [
    "VerificationService",
    "get_verification_service",
    "close_verification_service",
    "reset_verification_service",
]

AUTHENTICATION_FAILED = "Authentication with Prove API failed"
START_FAILED = "Failed to start verification process"
VALIDATE_FAILED = "Phone validation failed"
COMPLETE_FAILED = "Verification completion failed"


class VerificationService:
    """Orchestrates start, validate and complete against the Prove API.

    Parameters
    ----------
    client : ProveClient
        Adapter used for every remote call.
    client_id, client_secret : str
        Credentials for the client-credentials token exchange.
    token_cache : TokenCache, optional
        Shared token cache.  Built around ``client.request_token`` when
        omitted.
    """

    def __init__(
        self,
        client: ProveClient,
        client_id: str,
        client_secret: str,
        token_cache: Optional[TokenCache] = None,
        buffer_seconds: int = TOKEN_EXPIRY_BUFFER_SECONDS,
    ) -> None:
        self.client = client
        self._client_id = client_id
        self._client_secret = client_secret
        self.token_cache = token_cache or TokenCache(
            self._fetch_token, buffer_seconds=buffer_seconds,
        )

    async def _fetch_token(self):
        return await self.client.request_token(self._client_id, self._client_secret)

    async def _token(self) -> str:
        try:
            return await self.token_cache.get_token()
        except ProveError as e:
            logger.error("Error obtaining access token from Prove API", exc_info=e)
            raise ApplicationError(AUTHENTICATION_FAILED, e) from e

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def start_verification(
        self, request: StartVerificationRequest,
    ) -> StartVerificationResponse:
        """Begin a verification; returns the widget auth token and correlation id."""
        try:
            token = await self._token()
        except ApplicationError as e:
            raise ApplicationError(START_FAILED, e.cause) from e

        try:
            result = await self.client.start_verification(
                token,
                request.phone_number,
                request.last_four_ssn,
                request.flow_type,
            )
        except Exception as e:
            raise self._failure(
                START_FAILED, e,
                "Error initiating verification flow for phone=%s",
                mask_phone(request.phone_number),
            ) from e

        logger.info("Verification started: correlation_id=%s", result.correlation_id)
        return result

    async def validate_phone(self, request: ValidateVerificationRequest) -> Dict[str, Any]:
        """Validate the phone for a correlation id; rejections are in band."""
        try:
            token = await self._token()
        except ApplicationError as e:
            raise ApplicationError(VALIDATE_FAILED, e.cause) from e

        try:
            outcome = await self.client.validate_phone(token, request.correlation_id)
        except Exception as e:
            raise self._failure(
                VALIDATE_FAILED, e, "%s (correlation_id=%s)",
                VALIDATE_FAILED, request.correlation_id,
            ) from e
        return self._resolve(outcome, VALIDATE_FAILED, request.correlation_id)

    async def complete_verification(self, request: CompleteVerificationRequest) -> Dict[str, Any]:
        """Submit the individual for a correlation id; rejections are in band."""
        try:
            token = await self._token()
        except ApplicationError as e:
            raise ApplicationError(COMPLETE_FAILED, e.cause) from e

        try:
            outcome = await self.client.complete_verification(
                token, request.correlation_id, request.individual,
            )
        except Exception as e:
            raise self._failure(
                COMPLETE_FAILED, e, "%s (correlation_id=%s)",
                COMPLETE_FAILED, request.correlation_id,
            ) from e
        return self._resolve(outcome, COMPLETE_FAILED, request.correlation_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve(
        self, outcome: ProviderOutcome, failure: str, correlation_id: str,
    ) -> Dict[str, Any]:
        if isinstance(outcome, ProviderAccepted):
            return {"success": True, "data": outcome.data}

        if isinstance(outcome, ProviderRejected):
            logger.info(
                "Provider rejected request: %s (correlation_id=%s)",
                outcome.reason, correlation_id,
            )
            result: Dict[str, Any] = {"success": False, "message": outcome.reason}
            if outcome.data is not None:
                result["data"] = outcome.data
            return result

        if isinstance(outcome, TransportFault):
            raise self._failure(
                failure, outcome.cause, "%s (correlation_id=%s)",
                failure, correlation_id,
            ) from outcome.cause

        raise TypeError(f"Unexpected provider outcome: {outcome!r}")

    def _failure(
        self, failure: str, error: BaseException, msg: str, *args: Any,
    ) -> ApplicationError:
        """Log an adapter failure once and wrap it for the API layer."""
        logger.error(msg, *args, exc_info=error)
        self._invalidate_on_unauthorized(error)
        return ApplicationError(failure, error)

    def _invalidate_on_unauthorized(self, error: BaseException) -> None:
        if getattr(error, "status_code", None) == 401:
            self.token_cache.invalidate()


# ======================================================================
# Module-level singleton
# ======================================================================

_service: Optional[VerificationService] = None


def get_verification_service() -> VerificationService:
    """Return the process-wide service, building it from ``app.config``."""
    global _service
    if _service is None:
        environment = ServerEnvironment.from_setting(PROVE_SERVER_ENVIRONMENT)
        client = ProveClient(
            environment,
            final_target_url=FINAL_TARGET_URL,
            allow_otp_retry=ALLOW_OTP_RETRY,
            client_ip=CLIENT_IP_PLACEHOLDER,
        )
        _service = VerificationService(client, PROVE_CLIENT_ID, PROVE_CLIENT_SECRET)
        logger.info("Verification service initialized: environment=%s", environment.value)
    return _service


async def close_verification_service() -> None:
    """Close the HTTP client (call during shutdown)."""
    global _service
    if _service is not None:
        await _service.client.close()
        _service = None


def reset_verification_service() -> None:
    """Reset the singleton (for testing)."""
    global _service
    _service = None
