"""
Pytest fixtures for the live Playwright scenarios.

This module provides the browser, context and page fixtures, the page
objects, and the credentials and scenario data the scenarios run with.
Browser settings come from ``E2E_*`` variables and can be overridden with
the pytest-playwright command-line options (``--headed``, ``--browser``,
``--browser-channel``, ``--slowmo``).
"""

import logging
import uuid
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from mailflow.config import MailFlowSettings, configure_logging, get_settings
from mailflow.exceptions import MissingConfigError
from mailflow.models import Credentials, Message, ScenarioData
from mailflow.pages import ComposeDialog, InboxPage, LoginPage

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture(scope="session")
def settings() -> MailFlowSettings:
    """Settings resolved from the environment (and MAILFLOW_CONFIG_FILE)."""
    settings = get_settings()
    configure_logging(settings.logging)
    return settings


@pytest.fixture(scope="session")
def launch_options(pytestconfig, settings: MailFlowSettings) -> dict[str, Any]:
    """Browser launch options, with command-line overrides applied."""
    options = settings.browser.to_launch_options()
    if pytestconfig.getoption("--headed", default=False):
        options["headless"] = False
    channel = pytestconfig.getoption("--browser-channel", default=None)
    if channel:
        options["channel"] = channel
    slow_mo = pytestconfig.getoption("--slowmo", default=0)
    if slow_mo:
        options["slow_mo"] = slow_mo
    return options


@pytest.fixture(scope="session")
def browser_engine(pytestconfig, settings: MailFlowSettings) -> str:
    """Browser engine to launch: the first ``--browser`` option, else E2E_BROWSER."""
    browsers = pytestconfig.getoption("--browser", default=None)
    return browsers[0] if browsers else settings.browser.browser


# =============================================================================
# Playwright Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def playwright() -> AsyncGenerator[Playwright, None]:
    """Create a Playwright instance for the test session."""
    async with async_playwright() as pw:
        yield pw


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def browser(
    playwright: Playwright, browser_engine: str, launch_options: dict[str, Any]
) -> AsyncGenerator[Browser, None]:
    """Launch the configured browser once per session."""
    logger.info("Launching %s with %s", browser_engine, launch_options)
    browser = await getattr(playwright, browser_engine).launch(**launch_options)
    yield browser
    await browser.close()


@pytest_asyncio.fixture(loop_scope="session")
async def context(
    browser: Browser, settings: MailFlowSettings
) -> AsyncGenerator[BrowserContext, None]:
    """
    Create a new browser context for each test.

    Each scenario starts signed out, with its own cookies and storage,
    unless a saved storage state is configured.
    """
    context = await browser.new_context(**settings.browser.to_context_options())
    context.set_default_timeout(settings.browser.default_timeout)
    yield context
    await context.close()


@pytest_asyncio.fixture(loop_scope="session")
async def page(
    context: BrowserContext, settings: MailFlowSettings, request
) -> AsyncGenerator[Page, None]:
    """Create a new page; a screenshot is saved if the test fails."""
    page = await context.new_page()
    page.set_default_timeout(settings.browser.default_timeout)
    page.set_default_navigation_timeout(settings.browser.default_timeout)

    yield page

    report = getattr(request.node, "rep_call", None)
    if report is not None and report.failed:
        path = settings.browser.results_dir / "screenshots" / f"{request.node.name}.png"
        path.parent.mkdir(parents=True, exist_ok=True)
        await page.screenshot(path=str(path), full_page=True)
        logger.info("Failure screenshot saved to %s", path)
    await page.close()


# =============================================================================
# Page Object Fixtures
# =============================================================================

@pytest.fixture
def login_page(page: Page, settings: MailFlowSettings) -> LoginPage:
    return LoginPage(page, settings)


@pytest.fixture
def compose_dialog(page: Page, settings: MailFlowSettings) -> ComposeDialog:
    return ComposeDialog(page, settings)


@pytest.fixture
def inbox_page(page: Page, settings: MailFlowSettings) -> InboxPage:
    return InboxPage(page, settings)


# =============================================================================
# Scenario Data Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def credentials(settings: MailFlowSettings) -> Credentials:
    """The account under test; scenarios that sign in skip without it."""
    credentials = settings.credentials()
    if credentials is None:
        pytest.skip("Set GMAIL_USERNAME and GMAIL_PASSWORD to run sign-in scenarios")
    return credentials


@pytest.fixture(scope="session")
def scenario_data(settings: MailFlowSettings) -> ScenarioData:
    """The scenario data file, or built-in defaults when there is none."""
    try:
        return settings.load_scenario_data()
    except MissingConfigError as e:
        logger.warning("Using built-in scenario data: %s", e)
        return ScenarioData()


@pytest.fixture(scope="session")
def run_token(settings: MailFlowSettings):
    """Per-run subject suffix so sent-view lookups match this run only."""
    return uuid.uuid4().hex[:8] if settings.unique_subjects else None


@pytest.fixture
def outbox(
    scenario_data: ScenarioData,
    settings: MailFlowSettings,
    credentials: Credentials,
    run_token,
) -> list[Message]:
    """Messages for the compose scenario, addressed and made unique."""
    return scenario_data.outbox(
        settings.gmail.recipient_override, credentials.username, run_token
    )


@pytest_asyncio.fixture(loop_scope="session")
async def signed_in(login_page: LoginPage, credentials: Credentials) -> LoginPage:
    """A page signed in to the account under test."""
    await login_page.login_with(credentials)
    return login_page
