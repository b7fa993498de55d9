"""
Base Page Object class with common functionality for all pages.
"""

import re
from pathlib import Path
from typing import Optional

from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..config import MailFlowSettings, get_settings
from ..exceptions import FlowTimeoutError

COMPOSE_BUTTON = "Compose"
SIGN_IN_REJECTED = re.compile(r"Couldn[’']t sign you in", re.IGNORECASE)


class BasePage:
    """Base class for all Page Objects with common functionality."""

    def __init__(self, page: Page, settings: Optional[MailFlowSettings] = None):
        self.page = page
        self.settings = settings or get_settings()
        self.timeouts = self.settings.timeouts
        self.base_url = self.settings.gmail.base_url

    # Common selectors
    @property
    def compose_button(self) -> Locator:
        """The Compose button; its presence marks an authenticated inbox."""
        return self.page.get_by_role("button", name=COMPOSE_BUTTON)

    @property
    def sign_in_rejected_heading(self) -> Locator:
        """Heading shown when the identity provider refuses the sign-in."""
        return self.page.get_by_role("heading", level=1, name=SIGN_IN_REJECTED)

    @property
    def email_or_phone_input(self) -> Locator:
        return self.page.get_by_label("Email or phone")

    @property
    def main_region(self) -> Locator:
        return self.page.get_by_role("main")

    # Common navigation methods
    async def navigate_to(self, url: str = "") -> None:
        """Navigate to an absolute URL, or a path relative to the base URL."""
        if not url.startswith(("http://", "https://")):
            url = f"{self.base_url}{url.lstrip('/')}"
        await self.page.goto(url)

    async def wait_for_dom(self) -> None:
        """Wait for the DOM to be parsed. The webmail long-polls, so no networkidle."""
        await self.page.wait_for_load_state("domcontentloaded")

    # Common wait helpers
    async def wait_visible(self, locator: Locator, timeout: float, what: str) -> Locator:
        """
        Wait for a required element.

        Raises:
            FlowTimeoutError: If the element is not visible within ``timeout`` ms.
        """
        try:
            await locator.wait_for(state="visible", timeout=timeout)
        except PlaywrightTimeoutError as e:
            raise FlowTimeoutError(what, timeout, {"url": self.page.url}) from e
        return locator

    async def is_shown(self, locator: Locator) -> bool:
        """Whether the element is visible right now."""
        return await locator.is_visible()

    # Keyboard shortcuts
    async def press_key(self, key: str) -> None:
        """Press a keyboard key."""
        await self.page.keyboard.press(key)

    # Screenshot helper
    async def take_screenshot(self, name: str) -> Path:
        """Take a full-page screenshot under the results directory."""
        safe_name = "".join(c if c.isalnum() or c in "-_" else "_" for c in name)
        path = self.settings.browser.results_dir / "screenshots" / f"{safe_name}.png"
        path.parent.mkdir(parents=True, exist_ok=True)
        await self.page.screenshot(path=str(path), full_page=True)
        return path
