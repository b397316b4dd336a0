# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""Prove API HTTP client.

Thin async adapter over the Prove platform REST API:

- ``POST /token``        client-credentials exchange (form encoded)
- ``POST /v3/start``     begin a phone-based verification
- ``POST /v3/validate``  check the phone after the auth widget finishes
- ``POST /v3/complete``  submit the individual's details

Token and start failures raise (``AuthenticationError`` /
``VerificationError``).  Validate and complete never raise: they return a
:data:`ProviderOutcome` so the caller can tell a provider rejection from
a transport fault without catching anything.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from app.prove.environments import ServerEnvironment
from app.prove.exceptions import AuthenticationError, VerificationError
from app.prove.models import (
    AccessToken,
    Individual,
    ProviderAccepted,
    ProviderOutcome,
    ProviderRejected,
    StartVerificationResponse,
    TransportFault,
)

log = logging.getLogger(__name__)


def mask_phone(phone: str) -> str:
    digits = "".join(c for c in phone if c.isdigit())
    return f"***{digits[-4:]}" if len(digits) > 4 else "***"


def _json_body(response: httpx.Response) -> Optional[Dict[str, Any]]:
    """Decoded JSON object, or None when the body is empty or not an object."""
    if not response.content:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) and body else None


class ProveClient:
    """Async client for the Prove verification API.

    One pooled ``httpx.AsyncClient`` is kept per instance and bound to the
    selected environment's base URL; the bearer token is attached per
    call.  No timeout is set here, so httpx's client default applies.
    """

    def __init__(
        self,
        environment: ServerEnvironment = ServerEnvironment.UAT_US,
        *,
        final_target_url: str = "https://www.example.com",
        allow_otp_retry: bool = True,
        client_ip: str = "127.0.0.1",
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.environment = environment
        self.final_target_url = final_target_url
        self.allow_otp_retry = allow_otp_retry
        self.client_ip = client_ip
        self._http = http or httpx.AsyncClient(base_url=environment.base_url)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    # -------------------------------------------------------------------------
    # Token
    # -------------------------------------------------------------------------

    async def request_token(self, client_id: str, client_secret: str) -> AccessToken:
        """Exchange client credentials for an access token."""
        try:
            response = await self._http.post(
                "/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": client_id,
                    "client_secret": client_secret,
                },
            )
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Token request failed: {e}") from e

        if response.status_code >= 400:
            raise AuthenticationError(f"Token request returned HTTP {response.status_code}")

        body = _json_body(response)
        if body is None or not body.get("access_token"):
            raise AuthenticationError.no_token()

        try:
            expires_in = int(body.get("expires_in", 0))
        except (TypeError, ValueError) as e:
            raise AuthenticationError.no_token() from e

        return AccessToken(access_token=body["access_token"], expires_in=expires_in)

    # -------------------------------------------------------------------------
    # Verification flow
    # -------------------------------------------------------------------------

    async def start_verification(
        self,
        token: str,
        phone_number: str,
        ssn_last_four: str,
        flow_type: str,
    ) -> StartVerificationResponse:
        """Call /v3/start and return the widget auth token and correlation id."""
        payload = {
            "phoneNumber": phone_number,
            "finalTargetUrl": self.final_target_url,
            "flowType": flow_type,
            "ssn": ssn_last_four,
            "allowOTPRetry": self.allow_otp_retry,
            # TODO: forward the caller's address from X-Forwarded-For once the
            # deployment's proxy chain is fixed.
            "ipAddress": self.client_ip,
        }
        log.debug(f"Starting {flow_type} verification for phone={mask_phone(phone_number)}")

        try:
            response = await self._http.post("/v3/start", json=payload, headers=self._auth(token))
        except httpx.HTTPError as e:
            raise VerificationError(f"Prove start request failed: {e}") from e

        if response.status_code >= 400:
            raise VerificationError.http_status("start", response.status_code)

        body = _json_body(response)
        if body is None:
            raise VerificationError.no_start_payload()

        return StartVerificationResponse(
            auth_token=body.get("authToken") or "",
            correlation_id=body.get("correlationId") or "",
        )

    async def validate_phone(self, token: str, correlation_id: str) -> ProviderOutcome:
        """Call /v3/validate for a correlation id."""
        return await self._outcome(
            "validate",
            "/v3/validate",
            {"correlationId": correlation_id},
            token,
            rejection="Phone validation failed",
        )

    async def complete_verification(
        self,
        token: str,
        correlation_id: str,
        individual: Individual,
    ) -> ProviderOutcome:
        """Call /v3/complete with the individual's details."""
        return await self._outcome(
            "complete",
            "/v3/complete",
            {"correlationId": correlation_id, "individual": individual.to_provider()},
            token,
            rejection="Verification completion failed",
        )

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _auth(token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def _outcome(
        self,
        operation: str,
        path: str,
        payload: Dict[str, Any],
        token: str,
        *,
        rejection: str,
    ) -> ProviderOutcome:
        try:
            response = await self._http.post(path, json=payload, headers=self._auth(token))
        except httpx.HTTPError as e:
            log.warning(f"Prove {operation} transport error: {e}")
            return TransportFault(cause=e)

        if response.status_code >= 400:
            return TransportFault(
                cause=VerificationError.http_status(operation, response.status_code),
            )

        body = _json_body(response)
        if body is None:
            return ProviderRejected(reason=rejection)
        if body.get("success") is False:
            return ProviderRejected(reason=rejection, data=body)
        return ProviderAccepted(data=body)
