"""
Tests for the maintenance-dialog dismissal loop.

The page is a small in-memory fake: a dialog that is open until the right
action closes it. wait_for_timeout advances the injected clock so the budget
runs out in simulated time.
"""

from types import SimpleNamespace

import pytest
from playwright.async_api import Error as PlaywrightError

from apps.services.verifier.popup_dismissal import DismissalConfig, PopupDismissalEngine
from apps.services.verifier.page_selectors import SelectorCatalog
from libs.core.exceptions import PopupDismissalFailure

CATALOG = SelectorCatalog()
TITLEBAR_CLOSE = ".ui-dialog-titlebar-close"


class FakeLocator:
    def __init__(self, page, selector):
        self.page = page
        self.selector = selector

    @property
    def first(self):
        return self

    async def count(self):
        if self.page.probe_error:
            raise PlaywrightError("Target page, context or browser has been closed")
        if self.selector == CATALOG.popup_dialog:
            return 1 if self.page.dialog_open else 0
        return 0

    async def is_visible(self):
        return self.page.dialog_open and self.selector in self.page.visible

    async def click(self, timeout=None):
        self.page.clicked.append(self.selector)
        if self.page.click_error:
            raise PlaywrightError("Element is not attached to the DOM\nCall log:\n  - waiting")
        if self.selector in self.page.closes_on:
            self.page.dialog_open = False


class FakeDialogPage:
    def __init__(self, clock, dialog_open=True, visible=(), closes_on=(),
                 escape_closes=False, click_error=False, probe_error=False):
        self.clock = clock
        self.dialog_open = dialog_open
        self.visible = set(visible)
        self.closes_on = set(closes_on)
        self.escape_closes = escape_closes
        self.click_error = click_error
        self.probe_error = probe_error
        self.clicked = []
        self.keys = []
        self.keyboard = SimpleNamespace(press=self._press)

    def locator(self, selector):
        return FakeLocator(self, selector)

    async def wait_for_timeout(self, ms):
        self.clock.advance(ms / 1000.0)

    async def _press(self, key):
        self.keys.append(key)
        if self.escape_closes:
            self.dialog_open = False


@pytest.fixture
def engine(clock):
    return PopupDismissalEngine(CATALOG, DismissalConfig(), clock=clock)


class TestPopupDismissal:

    @pytest.mark.asyncio
    async def test_no_dialog(self, engine, clock):
        page = FakeDialogPage(clock, dialog_open=False)

        outcome = await engine.dismiss(page)

        assert outcome.dismissed is True
        assert outcome.dialog_seen is False
        assert outcome.strategy == "none_present"
        assert page.clicked == []
        assert page.keys == []

    @pytest.mark.asyncio
    async def test_closed_by_second_priority_button(self, engine, clock):
        page = FakeDialogPage(clock, visible={TITLEBAR_CLOSE}, closes_on={TITLEBAR_CLOSE})

        outcome = await engine.dismiss(page)

        assert outcome.dismissed is True
        assert outcome.dialog_seen is True
        assert outcome.strategy == f"close:{TITLEBAR_CLOSE}"
        assert page.clicked == [TITLEBAR_CLOSE]
        assert page.keys == []

    @pytest.mark.asyncio
    async def test_first_priority_button_wins(self, engine, clock):
        first = CATALOG.popup_close[0]
        page = FakeDialogPage(
            clock,
            visible={first, TITLEBAR_CLOSE},
            closes_on={first, TITLEBAR_CLOSE},
        )

        outcome = await engine.dismiss(page)

        assert outcome.strategy == f"close:{first}"
        assert page.clicked == [first]

    @pytest.mark.asyncio
    async def test_escape_fallback(self, engine, clock):
        page = FakeDialogPage(clock, escape_closes=True)

        outcome = await engine.dismiss(page)

        assert outcome.dismissed is True
        assert outcome.strategy == "escape"
        assert page.keys == ["Escape"]
        assert outcome.rounds == 1

    @pytest.mark.asyncio
    async def test_overlay_fallback(self, engine, clock):
        page = FakeDialogPage(
            clock,
            visible={CATALOG.popup_overlay},
            closes_on={CATALOG.popup_overlay},
        )

        outcome = await engine.dismiss(page)

        assert outcome.dismissed is True
        assert outcome.strategy == "overlay"
        assert page.clicked == [CATALOG.popup_overlay]

    @pytest.mark.asyncio
    async def test_budget_exhausted(self, engine, clock):
        page = FakeDialogPage(clock)
        start = clock()

        outcome = await engine.dismiss(page)

        assert outcome.dismissed is False
        assert outcome.dialog_seen is True
        assert outcome.strategy is None
        assert outcome.rounds > 1
        # Budget plus at most one settle pause
        assert clock() - start <= 6.0 + 0.15 + 1e-9
        assert clock() - start >= 6.0

    @pytest.mark.asyncio
    async def test_click_failures_are_collected_not_raised(self, engine, clock):
        page = FakeDialogPage(clock, visible=set(CATALOG.popup_close), click_error=True)

        outcome = await engine.dismiss(page)

        assert outcome.dismissed is False
        assert outcome.failures
        assert all(isinstance(f, PopupDismissalFailure) for f in outcome.failures)
        assert outcome.failures[0].strategy == f"close:{CATALOG.popup_close[0]}"
        # First line only; Playwright call logs are dropped
        assert "Call log" not in outcome.failures[0].message

    @pytest.mark.asyncio
    async def test_unreadable_page_counts_as_dialog_present(self, engine, clock):
        page = FakeDialogPage(clock, escape_closes=True, probe_error=True)

        outcome = await engine.dismiss(page)

        assert outcome.dismissed is False
        assert any(f.strategy == "probe" for f in outcome.failures)

    @pytest.mark.asyncio
    async def test_custom_budget(self, clock):
        engine = PopupDismissalEngine(CATALOG, DismissalConfig(budget_ms=100), clock=clock)
        page = FakeDialogPage(clock)

        outcome = await engine.dismiss(page)

        assert outcome.dismissed is False
        assert outcome.rounds == 1
