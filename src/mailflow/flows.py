"""
One-call flows built from the page objects.

Each function drives a complete user intent on a Playwright page and
returns (or raises) the classified result. They are convenient for
scripts and for scenarios that do not need step-level control.
"""

from typing import Optional

from playwright.async_api import Page

from .config import MailFlowSettings
from .models import Credentials, LoginState, Message, SendResult
from .pages import ComposeDialog, InboxPage, LoginPage


async def login_expect_success(
    page: Page, credentials: Credentials, settings: Optional[MailFlowSettings] = None
) -> LoginState:
    """
    Sign in and wait for the inbox.

    Raises:
        SignInBlockedError: If the sign-in was rejected.
        UnknownOutcomeError: If neither the inbox nor a rejection showed up.
    """
    return await LoginPage(page, settings).login_with(credentials)


async def login_expect_failure(
    page: Page, credentials: Credentials, settings: Optional[MailFlowSettings] = None
) -> LoginState:
    """
    Attempt a sign-in that should be rejected.

    Raises:
        AssertionError: If the sign-in reached the inbox instead.
        UnknownOutcomeError: If neither state showed up in time.
    """
    state = await LoginPage(page, settings).attempt_sign_in(
        credentials.username, credentials.password or None
    )
    if state is not LoginState.BLOCKED:
        raise AssertionError(
            f"Expected sign-in as {credentials.username} to be rejected, got {state.value}"
        )
    return state


async def compose_and_send(
    page: Page, message: Message, settings: Optional[MailFlowSettings] = None
) -> SendResult:
    """Open the compose dialog, fill ``message`` and send it."""
    return await ComposeDialog(page, settings).send_message(message)


async def verify_email_in_sent(
    page: Page,
    subject: str,
    to: Optional[str] = None,
    timeout_ms: Optional[float] = None,
    settings: Optional[MailFlowSettings] = None,
) -> Optional[bool]:
    """
    Check the sent view for ``subject``.

    Returns:
        Whether the recipient matched (best effort), None if not checked.

    Raises:
        MessageNotFoundError: If the message is not listed in time.
    """
    return await InboxPage(page, settings).verify_in_sent(subject, to, timeout_ms)


async def open_first_email_and_back(
    page: Page, settings: Optional[MailFlowSettings] = None
) -> None:
    await InboxPage(page, settings).open_first_email_and_back()


async def logout(page: Page, settings: Optional[MailFlowSettings] = None) -> None:
    await InboxPage(page, settings).logout()
