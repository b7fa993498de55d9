"""
Selector fallback chains.

The webmail UI ships several skins. The same logical element (the "To"
field, the account avatar) is reachable through an ARIA role in one skin
and only through a CSS/attribute selector in another, so lookups are an
ordered list of strategies tried in sequence; the first match wins.
"""

import logging
from typing import Optional

from playwright.async_api import Locator
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..exceptions import ElementNotFoundError

logger = logging.getLogger(__name__)


class LocatorChain:
    """Ordered ways of locating one logical UI element."""

    def __init__(self, name: str, *candidates: Locator):
        if not candidates:
            raise ValueError("LocatorChain needs at least one candidate")
        self.name = name
        self.candidates = candidates

    def __repr__(self) -> str:
        return f"LocatorChain({self.name!r}, {len(self.candidates)} candidates)"

    async def resolve(self, timeout: float) -> Locator:
        """
        Return the first candidate that becomes visible.

        Each candidate gets up to ``timeout`` ms before the next is tried.

        Raises:
            ElementNotFoundError: If no candidate became visible.
        """
        for index, candidate in enumerate(self.candidates):
            try:
                await candidate.wait_for(state="visible", timeout=timeout)
            except PlaywrightTimeoutError:
                logger.debug("%s: candidate %d not visible", self.name, index)
                continue
            if index:
                logger.info("%s: resolved by fallback candidate %d", self.name, index)
            return candidate

        raise ElementNotFoundError(
            self.name, [repr(candidate) for candidate in self.candidates]
        )

    async def first_visible(self) -> Optional[Locator]:
        """Return the first candidate visible right now, without waiting."""
        for candidate in self.candidates:
            if await candidate.is_visible():
                return candidate
        return None
