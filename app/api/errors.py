# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.
"""Error envelopes for the verification API.

Turns FastAPI request-validation failures into the 400 envelope with a
per-field ``errors`` map, and any unhandled exception into a generic 500
envelope.  Field keys use PascalCase property paths
(``Individual.Addresses[0].City``) because that is what the browser
form keys its inline errors on.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.prove.models import ApiResponse

log = logging.getLogger(__name__)

INVALID_REQUEST_MESSAGE = "Invalid request data"
INTERNAL_ERROR_MESSAGE = "An unexpected error occurred"
REQUEST_KEY = "Request"


def envelope_response(
    status_code: int,
    message: str,
    errors: Optional[Dict[str, List[str]]] = None,
) -> JSONResponse:
    """Failure envelope with ``success=false``."""
    body = ApiResponse(success=False, message=message, errors=errors)
    return JSONResponse(content=body.to_content(), status_code=status_code)


def field_key(loc: Sequence[Union[str, int]]) -> str:
    """Map a pydantic error location to a PascalCase property path.

    ``("body", "individual", "addresses", 0, "city")`` becomes
    ``"Individual.Addresses[0].City"``.  A location that does not name a
    field (missing or unparseable body) maps to ``"Request"``.
    """
    parts = list(loc[1:]) if loc and loc[0] == "body" else list(loc)
    if not parts or not isinstance(parts[0], str):
        return REQUEST_KEY

    key = ""
    for part in parts:
        if isinstance(part, int):
            key += f"[{part}]"
        else:
            segment = part[:1].upper() + part[1:]
            key = f"{key}.{segment}" if key else segment
    return key


def _error_message(error: Dict[str, Any], key: str) -> str:
    error_type = error.get("type", "")
    if error_type == "missing":
        if key == REQUEST_KEY:
            return "A non-empty request body is required."
        leaf = key.rsplit(".", 1)[-1]
        return f"The {leaf} field is required."
    if error_type == "json_invalid":
        return "The request body is not valid JSON."
    if error_type == "value_error":
        ctx = error.get("ctx") or {}
        if "error" in ctx:
            return str(ctx["error"])
    return str(error.get("msg", "Invalid value"))


def validation_errors(errors: Sequence[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Group pydantic errors by field key, preserving order."""
    grouped: Dict[str, List[str]] = {}
    for error in errors:
        key = field_key(error.get("loc", ()))
        grouped.setdefault(key, []).append(_error_message(error, key))
    return grouped


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = validation_errors(exc.errors())
    log.info("Rejected %s %s: invalid fields %s", request.method, request.url.path, sorted(errors))
    return envelope_response(400, INVALID_REQUEST_MESSAGE, errors)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error(
        "Unhandled exception on %s %s", request.method, request.url.path,
        exc_info=exc,
    )
    return envelope_response(500, INTERNAL_ERROR_MESSAGE)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
