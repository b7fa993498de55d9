"""
Pytest fixtures for mailflow tests.

This module provides the in-memory page used by the unit tests, the
``live`` marker and ``--run-live`` switch for the browser scenarios, and
the report hook used for failure screenshots.
"""

import asyncio
import os
import re
import sys
from pathlib import Path
from typing import Callable, Optional

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from mailflow.config import (
    BrowserSettings,
    GmailSettings,
    LoggingSettings,
    MailFlowSettings,
    TimeoutSettings,
)

# Real seconds per simulated millisecond: a 30000ms wait takes 0.3s.
TIME_SCALE = 1e-5
POLL_INTERVAL = 0.0005


# =============================================================================
# Live Scenario Switch
# =============================================================================

def pytest_addoption(parser):
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run scenarios that drive the real webmail in a browser",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "live: drives the real webmail in a browser (needs --run-live)"
    )


def pytest_collection_modifyitems(config, items):
    live_env = os.environ.get("MAILFLOW_LIVE", "").lower() in ("true", "1", "yes")
    if config.getoption("--run-live") or live_env:
        return

    skip_live = pytest.mark.skip(reason="live scenario: pass --run-live or set MAILFLOW_LIVE=true")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Hook to store test result for the failure screenshot in the page fixture."""
    outcome = yield
    rep = outcome.get_result()
    setattr(item, f"rep_{rep.when}", rep)


# =============================================================================
# In-Memory Page
# =============================================================================

def _describe(method: str, *args, **kwargs) -> str:
    parts = [repr(a) for a in args] + [f"{k}={v!r}" for k, v in kwargs.items()]
    return f"{method}({', '.join(parts)})"


class FakeKeyboard:
    """Keyboard that records key presses and typed text."""

    def __init__(self, page: "FakePage"):
        self._page = page

    async def press(self, key: str, **kwargs) -> None:
        self._page.record("press", "keyboard", key)

    async def type(self, text: str, **kwargs) -> None:
        self._page.record("type", "keyboard", text)


class FakeLocator:
    """
    Locator stand-in that mirrors the Playwright chaining surface.

    Every locator is identified by a description of the calls that built
    it. An element counts as visible when a token shown on the page is a
    substring of that description.
    """

    def __init__(self, page: "FakePage", description: str):
        self._page = page
        self.description = description

    def __repr__(self) -> str:
        return self.description

    def _child(self, step: str) -> "FakeLocator":
        return FakeLocator(self._page, f"{self.description} >> {step}")

    # Chaining
    def locator(self, selector: str, **kwargs) -> "FakeLocator":
        return self._child(_describe("locator", selector, **kwargs))

    def get_by_role(self, role: str, **kwargs) -> "FakeLocator":
        return self._child(_describe("get_by_role", role, **kwargs))

    def get_by_label(self, text, **kwargs) -> "FakeLocator":
        return self._child(_describe("get_by_label", text, **kwargs))

    def get_by_text(self, text, **kwargs) -> "FakeLocator":
        return self._child(_describe("get_by_text", text, **kwargs))

    def filter(self, **kwargs) -> "FakeLocator":
        return self._child(_describe("filter", **kwargs))

    def or_(self, other: "FakeLocator") -> "FakeLocator":
        return FakeLocator(self._page, f"({self.description} | {other.description})")

    @property
    def first(self) -> "FakeLocator":
        return self._child("first")

    def nth(self, index: int) -> "FakeLocator":
        return self._child(f"nth={index}")

    # Queries
    async def is_visible(self, **kwargs) -> bool:
        return self._page.is_visible(self.description)

    async def count(self) -> int:
        return 1 if self._page.is_visible(self.description) else 0

    async def inner_text(self, **kwargs) -> str:
        return self._page.text_for(self.description)

    async def wait_for(self, state: str = "visible", timeout: Optional[float] = None) -> None:
        want_visible = state in ("visible", "attached")
        await self._page.wait_until(
            lambda: self._page.is_visible(self.description) == want_visible,
            timeout,
            f"{self.description} to be {state}",
        )

    # Actions
    async def click(self, timeout: Optional[float] = None, **kwargs) -> None:
        await self.wait_for("visible", timeout)
        self._page.act("click", self.description)

    async def fill(self, value: str, **kwargs) -> None:
        self._page.act("fill", self.description, value)

    async def press_sequentially(self, text: str, **kwargs) -> None:
        self._page.act("type", self.description, text)

    async def scroll_into_view_if_needed(self, **kwargs) -> None:
        self._page.act("scroll", self.description)


class FakePage:
    """
    Page stand-in with a scaled virtual clock.

    Tests script the UI by showing tokens (optionally after a delay in
    simulated ms), hiding them, and attaching callbacks to clicks.
    """

    def __init__(self, url: str = "about:blank"):
        self.url = url
        self.keyboard = FakeKeyboard(self)
        self.actions: list[tuple] = []
        self._shown: dict[str, float] = {}
        self._texts: dict[str, str] = {}
        self._on_action: list[tuple[str, str, Callable[["FakePage"], None]]] = []
        self._failures: list[tuple[str, str, Exception]] = []
        self._exact: set[str] = set()

    # Scripting
    @staticmethod
    def _now() -> float:
        return asyncio.get_running_loop().time()

    def show(
        self,
        token: str,
        after: float = 0,
        text: Optional[str] = None,
        exact: bool = False,
    ) -> "FakePage":
        """
        Make elements matching ``token`` visible, ``after`` simulated ms from now.

        With ``exact`` only the locator described by ``token`` itself is
        shown, not the locators chained below it.
        """
        self._shown[token] = self._now() + after * TIME_SCALE if after else float("-inf")
        if exact:
            self._exact.add(token)
        if text is not None:
            self._texts[token] = text
        return self

    def hide(self, token: str) -> "FakePage":
        self._shown.pop(token, None)
        self._exact.discard(token)
        return self

    def on(self, verb: str, token: str, callback: Callable[["FakePage"], None]) -> "FakePage":
        """Run ``callback`` after a ``verb`` action on an element matching ``token``."""
        self._on_action.append((verb, token, callback))
        return self

    def fail(self, verb: str, token: str, error: Optional[Exception] = None) -> "FakePage":
        """Make ``verb`` on elements matching ``token`` raise."""
        self._failures.append((verb, token, error or PlaywrightError(f"{verb} failed")))
        return self

    # Introspection
    def is_visible(self, description: str) -> bool:
        now = self._now()
        return any(
            self._matches(token, description) and visible_at <= now
            for token, visible_at in self._shown.items()
        )

    def _matches(self, token: str, description: str) -> bool:
        if token in self._exact:
            return description == token
        return token in description

    def text_for(self, description: str) -> str:
        for token, text in self._texts.items():
            if token in description:
                return text
        return ""

    def record(self, verb: str, target: str, value: Optional[str] = None) -> None:
        self.actions.append((verb, target, value))

    def act(self, verb: str, description: str, value: Optional[str] = None) -> None:
        for fail_verb, token, error in self._failures:
            if fail_verb == verb and token in description:
                raise error
        self.record(verb, description, value)
        for on_verb, token, callback in self._on_action:
            if on_verb == verb and token in description:
                callback(self)

    def did(self, verb: str, token: str) -> bool:
        return any(v == verb and token in target for v, target, _ in self.actions)

    def values(self, verb: str, token: str) -> list:
        return [value for v, target, value in self.actions if v == verb and token in target]

    async def wait_until(
        self, condition: Callable[[], bool], timeout: Optional[float], what: str
    ) -> None:
        timeout = 30000 if timeout is None else timeout
        deadline = self._now() + timeout * TIME_SCALE
        while not condition():
            if self._now() >= deadline:
                raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {what}")
            await asyncio.sleep(POLL_INTERVAL)

    # Page surface
    def locator(self, selector: str, **kwargs) -> FakeLocator:
        return FakeLocator(self, _describe("locator", selector, **kwargs))

    def get_by_role(self, role: str, **kwargs) -> FakeLocator:
        return FakeLocator(self, _describe("get_by_role", role, **kwargs))

    def get_by_label(self, text, **kwargs) -> FakeLocator:
        return FakeLocator(self, _describe("get_by_label", text, **kwargs))

    def get_by_text(self, text, **kwargs) -> FakeLocator:
        return FakeLocator(self, _describe("get_by_text", text, **kwargs))

    async def goto(self, url: str, **kwargs) -> None:
        self.url = url
        self.act("goto", url)

    async def wait_for_load_state(self, state: str = "load", **kwargs) -> None:
        self.record("load_state", state)

    async def wait_for_url(self, url, timeout: Optional[float] = None, **kwargs) -> None:
        pattern = re.compile(url) if isinstance(url, str) else url
        await self.wait_until(
            lambda: pattern.search(self.url) is not None, timeout, f"URL {pattern.pattern}"
        )

    async def screenshot(self, path: Optional[str] = None, **kwargs) -> bytes:
        if path:
            Path(path).write_bytes(b"")
        self.record("screenshot", path or "")
        return b""


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_page() -> FakePage:
    """A blank in-memory page."""
    return FakePage()


@pytest.fixture
def settings(tmp_path) -> MailFlowSettings:
    """Settings built explicitly so the environment cannot leak in."""
    return MailFlowSettings(
        data_file=tmp_path / "config.json",
        unique_subjects=False,
        gmail=GmailSettings(
            username="tester@example.com",
            password="correct horse",
            handle_interstitials=True,
            recipient_override=None,
        ),
        browser=BrowserSettings(results_dir=tmp_path / "results"),
        timeouts=TimeoutSettings(),
        logging=LoggingSettings(),
    )


@pytest.fixture
def scaled_ms() -> Callable[[float], float]:
    """Convert real elapsed seconds back to simulated milliseconds."""
    return lambda seconds: seconds / TIME_SCALE
