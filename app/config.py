# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""Prove Identity backend configuration.

All values are read once from environment variables at import time.
Credentials default to empty strings so the application can start (and
serve its UI) without them; the first verification request will then
fail authentication against the provider.
"""

import os

# =============================================================================
# PROVE API
# =============================================================================

PROVE_CLIENT_ID: str = os.getenv("PROVE_CLIENT_ID", "")
PROVE_CLIENT_SECRET: str = os.getenv("PROVE_CLIENT_SECRET", "")

# One of uat-us, prod-us, uat-eu, prod-eu; anything else falls back to uat-us.
PROVE_SERVER_ENVIRONMENT: str = os.getenv("PROVE_SERVER_ENVIRONMENT", "uat-us")

# =============================================================================
# TOKEN CACHE
# =============================================================================

TOKEN_EXPIRY_BUFFER_SECONDS: int = int(os.getenv("PROVE_TOKEN_EXPIRY_BUFFER_SECONDS", "300"))

# =============================================================================
# START REQUEST PARAMETERS
# =============================================================================

FINAL_TARGET_URL: str = os.getenv("PROVE_FINAL_TARGET_URL", "https://www.example.com")
ALLOW_OTP_RETRY: bool = os.getenv("PROVE_ALLOW_OTP_RETRY", "true").lower() == "true"

# Sent as ipAddress on every start call. The real client address is not
# forwarded yet.
CLIENT_IP_PLACEHOLDER: str = os.getenv("PROVE_CLIENT_IP_PLACEHOLDER", "127.0.0.1")

# =============================================================================
# BROWSER
# =============================================================================

# Prove Auth SDK bundle loaded by the verification wizard.
PROVE_AUTH_SDK_URL: str = os.getenv(
    "PROVE_AUTH_SDK_URL",
    "https://cdn.jsdelivr.net/npm/@prove-identity/prove-auth/build/bundle/release/prove-auth.js",
)

# =============================================================================
# NETWORK
# =============================================================================

HTTP_HOST: str = os.getenv("HTTP_HOST", "0.0.0.0")
HTTP_PORT: int = int(os.getenv("HTTP_PORT", "8000"))

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")


def _mask(value: str, visible: int = 4) -> str:
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


def settings_summary() -> dict:
    """Non-secret view of the active configuration for logs and /healthz."""
    return {
        "client_id": _mask(PROVE_CLIENT_ID),
        "client_secret_set": bool(PROVE_CLIENT_SECRET),
        "server_environment": PROVE_SERVER_ENVIRONMENT,
        "token_expiry_buffer_seconds": TOKEN_EXPIRY_BUFFER_SECONDS,
        "final_target_url": FINAL_TARGET_URL,
        "allow_otp_retry": ALLOW_OTP_RETRY,
    }
