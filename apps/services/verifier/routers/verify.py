"""
Verification Router

Endpoints:
    POST /verify - Verify a registration code against the registry site

Status mapping:
    200 - result (cached or fresh)
    400 - code does not match the pattern
    429 - client inside its rate interval
    502 - verification could not be completed
"""

import logging
import math
import re
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from libs.core.config import get_settings
from libs.core.models import VerifyRequest
from libs.core.exceptions import (
    BrowserLaunchError,
    PatternError,
    RateLimitedError,
    UpstreamAutomationError,
)

from apps.services.verifier import dependencies

logger = logging.getLogger(__name__)

router = APIRouter(tags=["verify"])

MAX_ERROR_MESSAGE_CHARS = 500

# Playwright appends a multi-line "Call log:" section with selectors and URLs
_CALL_LOG = re.compile(r"\s*=+\s*logs\s*=+.*|\s*Call log:.*", re.DOTALL)


def sanitize_error_message(message: str) -> str:
    """Strip Playwright call logs and truncate for client responses."""
    text = _CALL_LOG.sub("", message or "").strip()
    if len(text) > MAX_ERROR_MESSAGE_CHARS:
        text = text[:MAX_ERROR_MESSAGE_CHARS - 3] + "..."
    return text


def client_key_for(request: Request, trust_forwarded_for: bool = True) -> str:
    """Client identity: first X-Forwarded-For hop if trusted, else peer address."""
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def _read_code(request: Request) -> Any:
    # Malformed or non-object bodies are treated as an empty code (-> 400)
    try:
        body = await request.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        return VerifyRequest.model_validate(body).code or ""
    return ""


@router.post("/verify")
async def verify(request: Request):
    settings = get_settings()
    client_key = client_key_for(request, settings.trust_forwarded_for)
    raw_code = await _read_code(request)

    orchestrator = dependencies.get_orchestrator()
    try:
        outcome = await orchestrator.verify(raw_code, client_key)
    except RateLimitedError as e:
        return JSONResponse(
            {"error": "rate_limited", "retryInMs": e.retry_after_ms},
            status_code=429,
            headers={"Retry-After": str(max(1, math.ceil(e.retry_after_ms / 1000)))},
        )
    except PatternError as e:
        logger.info(f"[Verify] Rejected pattern: {e.code!r} (client={client_key})")
        return JSONResponse(
            {"valid": False, "active": False, "reason": "pattern", "code": e.code},
            status_code=400,
        )
    except BrowserLaunchError as e:
        logger.error(f"[Verify] Browser launch failed: {e.message}")
        return JSONResponse(
            {"ok": False, "stage": "launch", "message": sanitize_error_message(e.message)},
            status_code=502,
        )
    except UpstreamAutomationError as e:
        logger.error(f"[Verify] Automation failed at '{e.stage}': {e.message.splitlines()[0] if e.message else ''}")
        return JSONResponse(
            {
                "ok": False,
                "stage": "verify",
                "step": e.stage,
                "message": sanitize_error_message(e.message),
            },
            status_code=502,
        )
    except Exception as e:
        logger.exception(f"[Verify] Unexpected error: {e}")
        return JSONResponse(
            {"ok": False, "stage": "verify", "message": sanitize_error_message(str(e))},
            status_code=502,
        )

    return outcome.to_response()
