"""
Debug Router

Deployment smoke tests. Mounted only when VERIFIER_DEBUG_ROUTES is true.

Endpoints:
    GET /debug/launch     - Launch (or reuse) the browser, open a page
    GET /debug/fetch      - Plain HTTP fetch without the browser
    GET /debug/example    - Open example.com in the browser
    GET /debug/site-title - Open the verification site, report its title

Aliases kept for existing smoke-test scripts: /debug/node-fetch, /debug/raa-title.
"""

import logging
from typing import Any, Awaitable, Dict

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from apps.services.verifier import dependencies, diagnostics

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/debug", tags=["debug"])


async def _run(stage: str, check: Awaitable[Dict[str, Any]]):
    try:
        return await check
    except Exception as e:
        logger.error(f"[Debug] {stage} failed: {e}")
        return JSONResponse({"ok": False, "stage": stage, "error": str(e)}, status_code=500)


@router.get("/launch")
async def debug_launch():
    return await _run(
        "launch",
        diagnostics.check_launch(dependencies.get_browser_manager(), dependencies.get_form_session()),
    )


@router.get("/fetch")
@router.get("/node-fetch", include_in_schema=False)
async def debug_fetch():
    return await _run("fetch", diagnostics.check_network())


@router.get("/example")
async def debug_example():
    return await _run(
        "goto-example",
        diagnostics.check_example(dependencies.get_browser_manager(), dependencies.get_form_session()),
    )


@router.get("/site-title")
@router.get("/raa-title", include_in_schema=False)
async def debug_site_title():
    return await _run(
        "goto-site",
        diagnostics.check_site_title(dependencies.get_browser_manager(), dependencies.get_form_session()),
    )
