# Copyright (c) Rich Connexions Ltd. All rights reserved.
# Licensed under the MIT License. See LICENSE for details.

"""FastAPI application for the Prove identity verification backend.

A backend-for-frontend in front of the Prove platform API.  It serves
the three-step verification wizard and proxies its calls:

**HTTP Endpoints**

* ``POST /api/verification/start``: Start a phone-based verification
  and return the widget auth token plus the provider correlation id.

* ``POST /api/verification/validate``: Validate the phone once the
  Prove authentication widget reports completion.

* ``POST /api/verification/complete``: Submit the individual's
  details and finish the verification.

* ``GET /healthz``: Service status, active (non-secret)
  configuration and token cache statistics.

* ``GET /``: The verification wizard (Jinja2 template, scripts under
  ``/static``).

**Logging**

Structured JSON logging is configured at startup using the
``LOG_LEVEL`` setting; ``LOG_FORMAT=text`` switches to plain lines for
local development.

Architecture
------------
The async lifespan context manager handles startup and shutdown:

1. Configure logging and build the verification service.
2. Yield (application serves requests).
3. Close the service's pooled HTTP client.
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from app.api.errors import install_error_handlers
from app.api.verification import router as verification_router
from app.config import (
    HTTP_HOST,
    HTTP_PORT,
    LOG_FORMAT,
    LOG_LEVEL,
    PROVE_AUTH_SDK_URL,
    settings_summary,
)
from app.prove.service import (
    VerificationService,
    close_verification_service,
    get_verification_service,
)


# ======================================================================
# Structured JSON logging
# ======================================================================


class _JSONFormatter(logging.Formatter):
    """Structured JSON log formatter.

    Produces one JSON object per log line with fields ``timestamp``,
    ``level``, ``logger``, ``message``, ``module`` and ``funcName``,
    plus ``exception`` (formatted traceback) when the record carries one.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def _configure_logging() -> None:
    """Configure root logging for the application.

    All existing handlers are removed first to prevent duplicate output
    when running under uvicorn.
    """
    root = logging.getLogger()

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if LOG_FORMAT.lower() == "text":
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    else:
        handler.setFormatter(_JSONFormatter())

    root.addHandler(handler)
    root.setLevel(getattr(logging, LOG_LEVEL.upper(), logging.INFO))

    # Suppress noisy third-party loggers.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# ======================================================================
# Application lifespan
# ======================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging, build the service, and close it on shutdown."""
    logger = logging.getLogger("prove.main")

    _configure_logging()
    logger.info("Prove Identity backend starting: %s", settings_summary())
    get_verification_service()

    yield

    logger.info("Prove Identity backend shutting down")
    await close_verification_service()


# ======================================================================
# FastAPI application
# ======================================================================

app = FastAPI(
    title="Prove Identity",
    description=(
        "Backend-for-frontend for Prove phone-based identity verification. "
        "Caches the Prove access token and proxies start, validate and "
        "complete calls for the browser wizard."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

install_error_handlers(app)
app.include_router(verification_router)

_APP_DIR = Path(__file__).parent
_TEMPLATES_DIR = _APP_DIR / "templates"
_STATIC_DIR = _APP_DIR / "static"

templates = Jinja2Templates(directory=str(_TEMPLATES_DIR))
app.mount("/static", StaticFiles(directory=str(_STATIC_DIR)), name="static")

logger = logging.getLogger("prove.main")


# ======================================================================
# Endpoints
# ======================================================================


@app.get("/healthz", tags=["health"])
async def healthz(
    service: VerificationService = Depends(get_verification_service),
) -> JSONResponse:
    """Health check with configuration summary and token cache stats."""
    return JSONResponse(
        content={
            "status": "ok",
            "environment": service.client.environment.value,
            "config": settings_summary(),
            "token_cache": service.token_cache.stats(),
        },
        status_code=200,
    )


@app.get("/", response_class=HTMLResponse, tags=["ui"])
async def index(request: Request) -> HTMLResponse:
    """Serve the verification wizard."""
    return templates.TemplateResponse(
        request, "index.html", {"prove_auth_sdk_url": PROVE_AUTH_SDK_URL},
    )


# ======================================================================
# Application runner (for direct invocation)
# ======================================================================


def main() -> None:
    """Run the backend using uvicorn.

    For development::

        python -m app.main

    For production deployments, use uvicorn directly::

        uvicorn app.main:app --host 0.0.0.0 --port 8000
    """
    import uvicorn

    _configure_logging()

    logger.info("Starting Prove Identity backend: HTTP=%s:%d", HTTP_HOST, HTTP_PORT)

    uvicorn.run(
        "app.main:app",
        host=HTTP_HOST,
        port=HTTP_PORT,
        log_level=LOG_LEVEL.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
