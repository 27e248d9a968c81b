# FilePath: "/meeting_bot/automation/playwright_driver.py"
# Project: Meeting Bot Fleet (MBF)
# Description: Chromium session driven through Playwright's async API.
# Author: "MBF Maintainers"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
from typing import Dict, List, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..errors import AutomationTimeoutError, SessionNotStartedError
from .base import AutomationCapability

logger = logging.getLogger("meeting_bot.automation")

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--use-fake-ui-for-media-stream",
    "--use-fake-device-for-media-stream",
]

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36"
)

_READ_GROUPS_JS = """
(items, fields) => items.map((item) => {
    const out = {};
    for (const [key, selector] of Object.entries(fields)) {
        const el = item.querySelector(selector);
        out[key] = el ? el.innerText.trim() : "";
    }
    return out;
})
"""


class PlaywrightSession(AutomationCapability):
    """One Chromium browser with a single page."""

    def __init__(self, headless: bool = True, viewport: Optional[Dict[str, int]] = None):
        self.headless = headless
        self.viewport = viewport or {"width": 1280, "height": 720}

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise SessionNotStartedError("Browser session not started")
        return self._page

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.headless, args=CHROMIUM_ARGS)
        self._context = await self._browser.new_context(viewport=self.viewport, user_agent=USER_AGENT)
        self._page = await self._context.new_page()
        logger.info(f"Chromium launched (headless={self.headless})")

    async def navigate(self, url: str) -> None:
        await self.page.goto(url)

    async def wait_for_selector(self, selector: str, timeout_seconds: float) -> None:
        try:
            await self.page.wait_for_selector(selector, state="visible", timeout=timeout_seconds * 1000)
        except PlaywrightTimeoutError:
            raise AutomationTimeoutError(selector, timeout_seconds)

    async def wait_for_text(self, text: str, timeout_seconds: float) -> None:
        try:
            await self.page.get_by_text(text).first.wait_for(state="visible", timeout=timeout_seconds * 1000)
        except PlaywrightTimeoutError:
            raise AutomationTimeoutError(f"text={text}", timeout_seconds)

    async def click(self, selector: str) -> None:
        await self.page.click(selector)

    async def activate(self, selector: str) -> None:
        # Call controls auto-hide until the pointer moves over the stage.
        await self.page.hover(selector)
        await self.page.click(selector)

    async def fill(self, selector: str, value: str) -> None:
        await self.page.fill(selector, value)

    async def read_text_groups(self, item_selector: str, fields: Dict[str, str]) -> List[Dict[str, str]]:
        return await self.page.eval_on_selector_all(item_selector, _READ_GROUPS_JS, fields)

    async def close(self) -> None:
        try:
            if self._browser:
                await self._browser.close()
        finally:
            self._browser = None
            self._context = None
            self._page = None
            if self._playwright:
                await self._playwright.stop()
                self._playwright = None
        logger.info("Chromium closed")
