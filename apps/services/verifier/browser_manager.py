"""
verifier/browser_manager.py

Lazily launches and memoizes the one shared browser process.

State machine:
    UNINITIALIZED --acquire--> LAUNCHING --ok--> READY
          ^                        |
          +-------- failure -------+
          +------ disconnected ----------------- READY

All callers that arrive while LAUNCHING await the same launch task, so
concurrent first requests cause exactly one launch. A failed launch puts the
manager back to UNINITIALIZED; the next acquire() starts over.

Requests never close the browser. They get isolated contexts from it
(see form_session.py) and the browser itself lives until shutdown.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from playwright.async_api import Browser, Playwright, async_playwright

from libs.core.exceptions import BrowserLaunchError

logger = logging.getLogger(__name__)

# Container-safe Chromium flags (Docker/Render: no sandbox, small /dev/shm, no GPU)
CHROMIUM_ARGS: List[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--no-zygote",
    "--disable-gpu",
    "--disable-software-rasterizer",
    "--disable-features=VizDisplayCompositor",
]

Launcher = Callable[[], Awaitable[Browser]]


class LaunchState(str, Enum):
    """Shared browser lifecycle state"""
    UNINITIALIZED = "uninitialized"
    LAUNCHING = "launching"
    READY = "ready"


def _consume_task_exception(task: "asyncio.Task") -> None:
    # Waiters normally observe the exception; this keeps asyncio quiet when
    # every waiter was cancelled first.
    if not task.cancelled():
        task.exception()


class BrowserLifecycleManager:
    """
    Single-flight owner of the shared Playwright browser.
    """

    def __init__(
        self,
        launcher: Optional[Launcher] = None,
        headless: bool = True,
        args: Optional[List[str]] = None,
    ):
        """
        Args:
            launcher: Coroutine factory returning a Browser. Defaults to a
                headless Chromium launch through Playwright.
            headless: Used by the default launcher only
            args: Chromium flags for the default launcher (default CHROMIUM_ARGS)
        """
        self._launcher: Launcher = launcher or self._launch_chromium
        self._headless = headless
        self._args = list(args) if args is not None else list(CHROMIUM_ARGS)

        self._state = LaunchState.UNINITIALIZED
        self._browser: Optional[Browser] = None
        self._launch_task: Optional[asyncio.Task] = None
        self._playwright: Optional[Playwright] = None

        self.launch_count = 0

    @property
    def state(self) -> LaunchState:
        return self._state

    async def acquire(self) -> Browser:
        """
        Return the shared browser, launching it on first use.

        Raises:
            BrowserLaunchError: the launch this call waited on failed
        """
        if self._state is LaunchState.READY and self._browser is not None:
            return self._browser

        if self._state is LaunchState.UNINITIALIZED:
            # No await between the state check and this write: only one
            # caller can start the launch.
            self._state = LaunchState.LAUNCHING
            self._launch_task = asyncio.create_task(self._launch())
            self._launch_task.add_done_callback(_consume_task_exception)

        # shield: a cancelled waiter must not cancel the launch other waiters share
        return await asyncio.shield(self._launch_task)

    async def _launch(self) -> Browser:
        self.launch_count += 1
        attempt = self.launch_count
        logger.info(f"[Browser] Launching shared browser (attempt {attempt})")

        try:
            browser = await self._launcher()
        except asyncio.CancelledError:
            self._reset()
            raise
        except Exception as e:
            logger.error(f"[Browser] Launch failed (attempt {attempt}): {e}")
            self._reset()
            raise BrowserLaunchError(
                f"Browser launch failed: {e}",
                context={"attempt": attempt},
            ) from e

        self._browser = browser
        self._state = LaunchState.READY
        browser.on("disconnected", self._on_disconnected)
        logger.info(f"[Browser] Shared browser ready (attempt {attempt})")
        return browser

    def _reset(self) -> None:
        self._state = LaunchState.UNINITIALIZED
        self._browser = None
        self._launch_task = None

    def _on_disconnected(self, browser: Browser) -> None:
        if browser is not self._browser:
            return
        logger.warning("[Browser] Shared browser disconnected; next request relaunches")
        self._reset()

    async def _launch_chromium(self) -> Browser:
        """Default launcher: headless Chromium via a long-lived Playwright driver."""
        if self._playwright is None:
            self._playwright = await async_playwright().start()

        return await self._playwright.chromium.launch(
            headless=self._headless,
            args=self._args,
        )

    async def close(self) -> None:
        """Close the browser and stop the Playwright driver (shutdown only)."""
        task = self._launch_task
        if self._state is LaunchState.LAUNCHING and task is not None:
            try:
                await task
            except (BrowserLaunchError, asyncio.CancelledError):
                pass

        browser = self._browser
        self._reset()

        if browser is not None:
            try:
                await browser.close()
                logger.info("[Browser] Shared browser closed")
            except Exception as e:
                logger.warning(f"[Browser] Error closing browser: {e}")

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"[Browser] Error stopping Playwright: {e}")
            self._playwright = None
