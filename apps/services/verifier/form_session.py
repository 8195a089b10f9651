"""
verifier/form_session.py

Drives one verification attempt through the registry's public form.

Each run gets its own browser context (cookies/storage isolated from
concurrent runs) and page, both closed on every exit path. Steps have
independent timeouts:

    navigate  -> domcontentloaded on the site URL
    popup     -> PopupDismissalEngine (best effort, never fails the run)
    fill      -> first visible code field (priority order), fill
    submit    -> first visible submit control (priority order), click
    results   -> wait for result cards, read their text in DOM order

Any Playwright error in a step becomes UpstreamAutomationError(stage, msg).
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator, List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError

from libs.core.exceptions import UpstreamAutomationError

from apps.services.verifier.popup_dismissal import PopupDismissalEngine
from apps.services.verifier.page_selectors import SelectorCatalog

if TYPE_CHECKING:
    from playwright.async_api import Browser, Locator, Page

logger = logging.getLogger(__name__)

# textContent, trimmed, for every match in document order
_EXTRACT_TEXTS_JS = "nodes => nodes.map(n => (n.textContent || '').trim())"

# Interval between visibility sweeps over selector candidates
LOCATE_POLL_MS = 100


@dataclass
class SessionTimeouts:
    """Per-step timeouts (milliseconds)."""
    navigation_ms: int = 90000
    field_ms: int = 20000
    submit_ms: int = 20000
    result_ms: int = 90000


class FormAutomationSession:
    """
    One-shot form driver. Stateless between runs; safe to share.
    """

    def __init__(
        self,
        site_url: str,
        selectors: Optional[SelectorCatalog] = None,
        popup_engine: Optional[PopupDismissalEngine] = None,
        timeouts: Optional[SessionTimeouts] = None,
        user_agent: str = "Mozilla/5.0",
    ):
        self.site_url = site_url
        self.selectors = selectors or SelectorCatalog()
        self.popup_engine = popup_engine or PopupDismissalEngine(self.selectors)
        self.timeouts = timeouts or SessionTimeouts()
        self.user_agent = user_agent

    async def run(self, browser: "Browser", code: str) -> List[str]:
        """
        Submit `code` and return the result card texts in page order.

        Raises:
            UpstreamAutomationError: any step failed or timed out
        """
        async with self.open_page(browser) as page:
            await self._step("navigate", self._navigate(page))

            # Outcome intentionally ignored: a dialog that still blocks the
            # form surfaces as a fill/submit timeout below.
            outcome = await self.popup_engine.dismiss(page)
            if outcome.dialog_seen and not outcome.dismissed:
                logger.warning(
                    f"[Session] Dialog still visible after {outcome.elapsed_ms:.0f}ms; continuing"
                )

            await self._step("fill", self._fill_code(page, code))
            await self._step("submit", self._submit(page))
            return await self._step("results", self._read_results(page))

    @asynccontextmanager
    async def open_page(self, browser: "Browser") -> AsyncIterator["Page"]:
        """Isolated context + page, both released however the block exits."""
        context = None
        page = None
        try:
            try:
                context = await browser.new_context(
                    user_agent=self.user_agent,
                    ignore_https_errors=True,
                )
                page = await context.new_page()
            except PlaywrightError as e:
                raise UpstreamAutomationError("context", _first_line(e)) from e
            yield page
        finally:
            await self._release(page, context)

    async def _release(self, page: Optional["Page"], context) -> None:
        # Close failures must not mask the run's own result or error
        if page is not None:
            try:
                await page.close()
            except Exception as e:
                logger.debug(f"[Session] Page close failed (ignored): {e}")
        if context is not None:
            try:
                await context.close()
            except Exception as e:
                logger.debug(f"[Session] Context close failed (ignored): {e}")

    async def _step(self, stage: str, coro):
        start = time.monotonic()
        try:
            result = await coro
        except UpstreamAutomationError:
            raise
        except (PlaywrightError, asyncio.TimeoutError) as e:
            logger.warning(f"[Session] Step '{stage}' failed: {_first_line(e)}")
            raise UpstreamAutomationError(stage, str(e) or type(e).__name__) from e
        logger.info(f"[Session] Step '{stage}' ok ({(time.monotonic() - start) * 1000:.0f}ms)")
        return result

    async def _navigate(self, page: "Page") -> None:
        await page.goto(
            self.site_url,
            wait_until="domcontentloaded",
            timeout=self.timeouts.navigation_ms,
        )

    async def _fill_code(self, page: "Page", code: str) -> None:
        field = await self._locate_first(page, self.selectors.code_field, self.timeouts.field_ms, "fill", "code field")
        await field.fill(code, timeout=self.timeouts.field_ms)

    async def _submit(self, page: "Page") -> None:
        button = await self._locate_first(page, self.selectors.submit_button, self.timeouts.submit_ms, "submit", "submit control")
        await button.click(timeout=self.timeouts.submit_ms)

    async def _read_results(self, page: "Page") -> List[str]:
        selector = self.selectors.result_item
        await page.wait_for_selector(selector, timeout=self.timeouts.result_ms)
        texts = await page.eval_on_selector_all(selector, _EXTRACT_TEXTS_JS)
        return [t if isinstance(t, str) else "" for t in (texts or [])]

    async def _locate_first(
        self,
        page: "Page",
        candidates: Sequence[str],
        timeout_ms: int,
        stage: str,
        what: str,
    ) -> "Locator":
        """
        Poll the candidates in priority order until one is visible.

        Each selector is queried on its own, so Playwright-only engines
        (xpath=, text=, role=) work next to CSS. Attached but hidden
        matches are skipped.
        """
        deadline = time.monotonic() + timeout_ms / 1000.0
        while True:
            for selector in candidates:
                locator = page.locator(selector).first
                if await locator.is_visible():
                    logger.debug(f"[Session] {what}: using {selector}")
                    return locator
            if time.monotonic() >= deadline:
                raise UpstreamAutomationError(
                    stage, f"No visible {what} among {list(candidates)} after {timeout_ms}ms"
                )
            await asyncio.sleep(LOCATE_POLL_MS / 1000.0)


def _first_line(error: BaseException) -> str:
    text = str(error)
    return text.splitlines()[0] if text else type(error).__name__
