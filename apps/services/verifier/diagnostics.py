"""
verifier/diagnostics.py

Deployment smoke checks behind the /debug routes. Not part of verification.

Each check returns a plain dict for the HTTP layer and lets exceptions
propagate; the router turns them into {"ok": false, ...}.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from playwright.async_api import Error as PlaywrightError

from apps.services.verifier.browser_manager import BrowserLifecycleManager
from apps.services.verifier.form_session import FormAutomationSession

logger = logging.getLogger(__name__)

EXAMPLE_HOST = "example.com"
PROBE_TIMEOUT_MS = 60000


async def check_launch(manager: BrowserLifecycleManager, session: FormAutomationSession) -> Dict[str, Any]:
    """Acquire the shared browser and open/close an isolated page."""
    browser = await manager.acquire()
    async with session.open_page(browser):
        pass
    return {"ok": True, "stage": "launch", "browser_state": manager.state.value}


async def check_network(
    timeout_seconds: float = 20.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Plain HTTP fetch, no browser: separates network problems from Chromium ones."""
    async with httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True, transport=transport) as client:
        response = await client.get(f"https://{EXAMPLE_HOST}")
    return {"ok": True, "stage": "fetch", "status": response.status_code, "bytes": len(response.content)}


async def check_example(manager: BrowserLifecycleManager, session: FormAutomationSession) -> Dict[str, Any]:
    """Open example.com in the browser (https, then http) and read the title."""
    browser = await manager.acquire()
    async with session.open_page(browser) as page:
        try:
            await page.goto(f"https://{EXAMPLE_HOST}", wait_until="domcontentloaded", timeout=PROBE_TIMEOUT_MS)
        except PlaywrightError as e:
            logger.info(f"[Diagnostics] https probe failed, retrying over http: {e}")
            await page.goto(f"http://{EXAMPLE_HOST}", wait_until="domcontentloaded", timeout=PROBE_TIMEOUT_MS)
        title = await _safe_title(page)
    return {"ok": True, "stage": "goto-example", "title": title}


async def check_site_title(manager: BrowserLifecycleManager, session: FormAutomationSession) -> Dict[str, Any]:
    """Open the verification site and read the title."""
    browser = await manager.acquire()
    async with session.open_page(browser) as page:
        await page.goto(session.site_url, wait_until="domcontentloaded", timeout=session.timeouts.navigation_ms)
        title = await _safe_title(page)
    return {"ok": True, "stage": "goto-site", "title": title}


async def _safe_title(page) -> Any:
    try:
        return await page.title()
    except PlaywrightError:
        return None
