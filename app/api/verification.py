# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""Verification API endpoints.

| Endpoint                         | Body                                  | 200 data                      |
|----------------------------------|---------------------------------------|-------------------------------|
| POST /api/verification/start     | phoneNumber, lastFourSSN, flowType    | authToken, correlationId      |
| POST /api/verification/validate  | correlationId                         | provider validation envelope  |
| POST /api/verification/complete  | correlationId, individual             | provider completion envelope  |

Every response is wrapped in ``{success, data, message, errors}``.
Body validation failures are answered with 400 by the handler in
``app.api.errors``.  Orchestrator failures are logged here and answered
with a generic 500; exception text never reaches the client.

Start is not idempotent: two identical calls open two provider sessions
with distinct correlation ids.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.errors import envelope_response
from app.prove.models import (
    ApiResponse,
    CompleteVerificationRequest,
    StartVerificationRequest,
    ValidateVerificationRequest,
)
from app.prove.service import VerificationService, get_verification_service

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/verification", tags=["verification"])

_ERROR_RESPONSES = {
    400: {"description": "Invalid request data"},
    500: {"description": "Downstream verification failure"},
}


def _ok(data, message: str) -> JSONResponse:
    body = ApiResponse(success=True, data=data, message=message)
    return JSONResponse(content=body.to_content(), status_code=200)


@router.post("/start", responses=_ERROR_RESPONSES)
async def start_verification(
    body: StartVerificationRequest,
    service: VerificationService = Depends(get_verification_service),
) -> JSONResponse:
    """Start a phone-based verification and return the widget auth token."""
    try:
        result = await service.start_verification(body)
    except Exception:
        log.exception("Error initiating verification")
        return envelope_response(500, "An error occurred while initiating verification")

    return _ok(result.model_dump(by_alias=True), "Verification initiated successfully")


@router.post("/validate", responses=_ERROR_RESPONSES)
async def validate_phone(
    body: ValidateVerificationRequest,
    service: VerificationService = Depends(get_verification_service),
) -> JSONResponse:
    """Validate the phone once the authentication widget has finished."""
    try:
        result = await service.validate_phone(body)
    except Exception:
        log.exception("Error validating phone: correlation_id=%s", body.correlation_id)
        return envelope_response(500, "An error occurred during phone validation")

    return _ok(result, "Phone validation completed")


@router.post("/complete", responses=_ERROR_RESPONSES)
async def complete_verification(
    body: CompleteVerificationRequest,
    service: VerificationService = Depends(get_verification_service),
) -> JSONResponse:
    """Submit the individual's details and finish the verification."""
    try:
        result = await service.complete_verification(body)
    except Exception:
        log.exception("Error completing verification: correlation_id=%s", body.correlation_id)
        return envelope_response(500, "An error occurred while completing verification")

    return _ok(result, "Verification completed successfully")
