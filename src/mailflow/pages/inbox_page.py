"""
Inbox Page Object: folder navigation, sent-items lookup and sign-out.
"""

import logging
import re
from typing import Optional

from playwright.async_api import Locator
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..exceptions import ElementNotFoundError, FlowTimeoutError, MessageNotFoundError
from ..flow import Detector, LocatorChain, race_outcome
from ..models import Outcome
from .base_page import BasePage

logger = logging.getLogger(__name__)

INBOX_LINK = re.compile(r"^Inbox$")
SENT_LINK = re.compile(r"^Sent$")
LEGACY_COMPOSE = 'div[role="button"][gh="cm"], div[aria-label^="Compose"]'
CONVERSATION_ROW = "tr.zA"
ROW_SUBJECT = "span.bog"
THREAD_TOOLBAR = 'div[aria-label^="Back to Inbox"], div[aria-label="More"]'
BACK_TO_INBOX = 'div[aria-label^="Back to Inbox"]'
ACCOUNT_BUTTON = re.compile(r"Google Account", re.IGNORECASE)
ACCOUNT_FALLBACK = 'a[aria-label^="Google Account"], img[alt^="Google Account"]'
SIGN_OUT = re.compile(r"^Sign out$", re.IGNORECASE)
SIGNED_OUT_URL = re.compile(r"accounts\.google\.com/.+(ServiceLogin|signin)", re.IGNORECASE)


class InboxPage(BasePage):
    """Page Object for the mailbox views of a signed-in session."""

    # Selectors - Navigation
    @property
    def inbox_link(self) -> Locator:
        return self.page.get_by_role("link", name=INBOX_LINK)

    @property
    def sent_link(self) -> Locator:
        return self.page.get_by_role("link", name=SENT_LINK)

    @property
    def any_compose_button(self) -> Locator:
        """Compose button in either the ARIA or the legacy markup."""
        return self.compose_button.or_(self.page.locator(LEGACY_COMPOSE)).first

    # Selectors - Conversation list
    @property
    def conversation_rows(self) -> Locator:
        return self.page.locator(CONVERSATION_ROW)

    def rows_with_subject(self, subject: str) -> Locator:
        """Conversation rows whose subject cell contains ``subject``."""
        return self.conversation_rows.filter(
            has=self.page.locator(ROW_SUBJECT, has_text=subject)
        )

    @property
    def thread_toolbar(self) -> Locator:
        return self.page.locator(THREAD_TOOLBAR).first

    @property
    def back_to_inbox_button(self) -> Locator:
        return self.page.locator(BACK_TO_INBOX).first

    # Selectors - Account menu
    @property
    def account_menu(self) -> LocatorChain:
        return LocatorChain(
            "account menu",
            self.page.get_by_role("button", name=ACCOUNT_BUTTON).first,
            self.page.locator(ACCOUNT_FALLBACK).first,
        )

    @property
    def sign_out_control(self) -> Locator:
        """"Sign out" as a button in some account cards, a link in others."""
        return (
            self.page.get_by_role("button", name=SIGN_OUT)
            .or_(self.page.get_by_role("link", name=SIGN_OUT))
            .first
        )

    # Actions
    async def go_to_inbox(self) -> None:
        await self.inbox_link.click()
        await self.wait_visible(self.compose_button, self.timeouts.inbox, "the inbox")

    async def go_to_sent(self) -> None:
        await self.sent_link.click()

    async def verify_in_sent(
        self,
        subject: str,
        to: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Optional[bool]:
        """
        Check that a message with ``subject`` is listed in the sent view.

        Args:
            subject: Subject text to look for.
            to: Optional recipient list; only its first address is checked,
                and a mismatch is not an error.
            timeout: Lookup budget in ms, per strategy.

        Returns:
            Whether the first recipient was seen on the row, or None when
            no recipient was given.

        Raises:
            MessageNotFoundError: If no row or text with the subject shows up.
        """
        timeout = timeout if timeout is not None else self.timeouts.sent_lookup
        await self.go_to_sent()

        row = self.rows_with_subject(subject).first
        lookup = LocatorChain(
            f"sent message {subject!r}",
            row,
            self.main_region.get_by_text(subject, exact=False).first,
        )
        try:
            await lookup.resolve(timeout)
        except ElementNotFoundError as e:
            raise MessageNotFoundError(subject, timeout) from e

        if not to:
            return None

        first_recipient = to.split(",")[0].strip()
        try:
            await row.get_by_text(first_recipient, exact=False).wait_for(
                state="visible", timeout=self.timeouts.recipient_probe
            )
        except PlaywrightTimeoutError:
            logger.info("Recipient %s not shown on the sent row for %r", first_recipient, subject)
            return False
        return True

    async def open_first_email_and_back(self) -> None:
        """Open the newest conversation, then return to the inbox."""
        await self.wait_visible(self.any_compose_button, self.timeouts.inbox, "the inbox")

        first_row = self.conversation_rows.first
        await self.wait_visible(first_row, self.timeouts.inbox, "a conversation row")
        await first_row.click()

        await self.wait_visible(
            self.thread_toolbar, self.timeouts.inbox, "the message view"
        )

        if await self.is_shown(self.back_to_inbox_button):
            await self.back_to_inbox_button.click()
        else:
            await self.navigate_to(self.settings.gmail.inbox_url)

        await self.wait_visible(self.any_compose_button, self.timeouts.inbox, "the inbox")

    async def logout(self) -> None:
        """
        Sign out through the account menu, or the sign-out URL if that fails.

        Raises:
            FlowTimeoutError: If the sign-in page does not come back.
        """
        avatar = await self.account_menu.resolve(self.timeouts.locator_probe)
        await avatar.click()

        sign_out = self.sign_out_control
        try:
            await sign_out.wait_for(state="visible", timeout=self.timeouts.sign_out_menu)
            await sign_out.scroll_into_view_if_needed()
            await sign_out.click()
        except PlaywrightTimeoutError:
            logger.warning("Sign out control not reachable, using the sign-out URL")
            await self.navigate_to(self.settings.gmail.logout_url)

        result = await race_outcome(
            [
                Detector.url(
                    Outcome.SUCCESS,
                    self.page,
                    SIGNED_OUT_URL,
                    self.timeouts.sign_out,
                    name="sign-in URL",
                ),
                Detector.visible(
                    Outcome.SUCCESS,
                    self.email_or_phone_input,
                    self.timeouts.sign_out,
                    name="identifier field",
                ),
            ],
            action="sign-out",
        )
        if result.is_unknown:
            raise FlowTimeoutError("the sign-in page after sign-out", self.timeouts.sign_out)
