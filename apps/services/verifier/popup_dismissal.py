"""
verifier/popup_dismissal.py

Best-effort removal of the registry's maintenance dialog.

The site sometimes opens a jQuery UI modal on load that covers the form.
Within a fixed wall-clock budget the engine cycles through:
    1. close buttons, in priority order
    2. Escape key
    3. clicking the overlay backdrop
re-checking after every attempt whether any dialog is still visible.

dismiss() never raises. Attempt failures are collected as
PopupDismissalFailure values on the returned outcome. If the budget runs out
the caller simply continues; a dialog that really blocks the form shows up
later as a fill/submit timeout.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional

from libs.core.exceptions import PopupDismissalFailure

from apps.services.verifier.page_selectors import SelectorCatalog

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


@dataclass
class DismissalConfig:
    """Timing for the dismissal loop (milliseconds)."""
    budget_ms: int = 6000          # Total wall-clock budget
    click_timeout_ms: int = 800    # Per click
    settle_ms: int = 150           # Pause after each action before re-checking


@dataclass
class DismissalOutcome:
    """
    Result of a dismissal run.

    `failures` is the error side of the result: collected, logged, and
    intentionally not acted on by callers.
    """
    dismissed: bool
    dialog_seen: bool = False
    strategy: Optional[str] = None
    attempts: int = 0
    rounds: int = 0
    elapsed_ms: float = 0
    failures: List[PopupDismissalFailure] = field(default_factory=list)


class PopupDismissalEngine:
    """Deadline-bounded close/escape/overlay loop."""

    ESCAPE_KEY = "Escape"

    def __init__(
        self,
        selectors: Optional[SelectorCatalog] = None,
        config: Optional[DismissalConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.selectors = selectors or SelectorCatalog()
        self.config = config or DismissalConfig()
        self._clock = clock

    async def dismiss(self, page: "Page") -> DismissalOutcome:
        """Try to clear the dialog within the budget. Never raises."""
        start = self._clock()
        deadline = start + self.config.budget_ms / 1000.0
        outcome = DismissalOutcome(dismissed=False)

        def finish(dismissed: bool, strategy: Optional[str] = None) -> DismissalOutcome:
            outcome.dismissed = dismissed
            outcome.strategy = strategy
            outcome.elapsed_ms = (self._clock() - start) * 1000
            if outcome.dialog_seen:
                logger.info(
                    f"[Popup] {'Dismissed via ' + strategy if dismissed else 'Gave up'} "
                    f"after {outcome.rounds} round(s), {outcome.attempts} attempt(s), "
                    f"{outcome.elapsed_ms:.0f}ms, {len(outcome.failures)} failure(s)"
                )
            return outcome

        if await self._dialog_gone(page, outcome):
            return finish(True, "none_present")
        outcome.dialog_seen = True

        while self._clock() < deadline:
            outcome.rounds += 1

            # 1. Close buttons in priority order
            for selector in self.selectors.popup_close:
                clicked = await self._attempt(
                    outcome, f"close:{selector}", lambda s=selector: self._click_if_visible(page, s)
                )
                if clicked:
                    await self._settle(page)
                    if await self._dialog_gone(page, outcome):
                        return finish(True, f"close:{selector}")
                if self._clock() >= deadline:
                    return finish(False)

            # 2. Escape key
            await self._attempt(outcome, "escape", lambda: page.keyboard.press(self.ESCAPE_KEY))
            await self._settle(page)
            if await self._dialog_gone(page, outcome):
                return finish(True, "escape")
            if self._clock() >= deadline:
                return finish(False)

            # 3. Overlay backdrop
            clicked = await self._attempt(
                outcome, "overlay", lambda: self._click_if_visible(page, self.selectors.popup_overlay)
            )
            if clicked:
                await self._settle(page)
                if await self._dialog_gone(page, outcome):
                    return finish(True, "overlay")

        return finish(False)

    async def _attempt(
        self,
        outcome: DismissalOutcome,
        strategy: str,
        action: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run one strategy; a failure is recorded and returned as None."""
        outcome.attempts += 1
        try:
            return await action()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            failure = PopupDismissalFailure(strategy, str(e).splitlines()[0] if str(e) else type(e).__name__)
            outcome.failures.append(failure)
            logger.debug(f"[Popup] Attempt failed (ignored): {failure.message}")
            return None

    async def _click_if_visible(self, page: "Page", selector: str) -> bool:
        locator = page.locator(selector).first
        if not await locator.is_visible():
            return False
        await locator.click(timeout=self.config.click_timeout_ms)
        return True

    async def _dialog_gone(self, page: "Page", outcome: DismissalOutcome) -> bool:
        # An unreadable page counts as "dialog still there"
        count = await self._attempt(
            outcome, "probe", lambda: page.locator(self.selectors.popup_dialog).count()
        )
        return count == 0

    async def _settle(self, page: "Page") -> None:
        try:
            await page.wait_for_timeout(self.config.settle_ms)
        except asyncio.CancelledError:
            raise
        except Exception:
            # Page-side timer unavailable (page closing); still yield for the same time
            await asyncio.sleep(self.config.settle_ms / 1000.0)
