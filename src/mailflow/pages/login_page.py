"""
Login Page Object for the two-step (identifier, then password) sign-in.
"""

import logging
from typing import Optional

from playwright.async_api import Locator, Page

from ..config import MailFlowSettings
from ..exceptions import FlowTimeoutError, SignInBlockedError, UnknownOutcomeError
from ..flow import (
    Detector,
    RaceResult,
    absorb_interstitial,
    absorb_interstitials,
    passkey_prompt,
    race_outcome,
    recovery_prompt,
    sign_in_interstitials,
)
from ..models import Credentials, LoginState, Outcome
from .base_page import BasePage

logger = logging.getLogger(__name__)


class LoginPage(BasePage):
    """Page Object for the sign-in flow."""

    def __init__(self, page: Page, settings: Optional[MailFlowSettings] = None):
        super().__init__(page, settings)
        self.state = LoginState.UNAUTHENTICATED

    # Selectors
    @property
    def next_button(self) -> Locator:
        """The "Next" button shared by the identifier and password steps."""
        return self.page.get_by_role("button", name="Next")

    @property
    def password_input(self) -> Locator:
        """Visible password field, by label (avoids the hidden inputs)."""
        return self.page.get_by_label("Enter your password")

    # Actions
    async def goto(self) -> None:
        """Open the webmail entry point."""
        await self.navigate_to(self.base_url)
        await self.wait_for_dom()
        self.state = LoginState.UNAUTHENTICATED

    async def fill_email_and_next(self, email: str) -> None:
        await self.email_or_phone_input.fill(email)
        await self.next_button.click()

    async def maybe_dismiss_passkey(self) -> bool:
        """Dismiss the "Sign in faster" passkey offer if it appears."""
        return await absorb_interstitial(
            self.page, passkey_prompt(self.page), self.timeouts.interstitial
        )

    async def maybe_dismiss_recovery(self) -> bool:
        """Dismiss the recovery info prompt if it appears."""
        return await absorb_interstitial(
            self.page, recovery_prompt(self.page), self.timeouts.interstitial
        )

    async def dismiss_interstitials(self) -> list[str]:
        """Clear optional prompts, unless interstitial handling is turned off."""
        if not self.settings.gmail.handle_interstitials:
            return []
        return await absorb_interstitials(
            self.page, sign_in_interstitials(self.page), self.timeouts.interstitial
        )

    async def classify_identifier_step(self, timeout: float) -> RaceResult:
        """Race the password prompt against the sign-in rejected page."""
        return await race_outcome(
            [
                Detector.visible(
                    Outcome.SUCCESS, self.password_input, timeout, name="password prompt"
                ),
                Detector.visible(
                    Outcome.BLOCKED,
                    self.sign_in_rejected_heading,
                    timeout,
                    name="sign-in rejected",
                ),
            ],
            action="identifier",
        )

    async def submit_password(self, password: str) -> None:
        await self.password_input.fill(password)
        await self.next_button.click()
        self.state = LoginState.CREDENTIALS_ENTERED

    async def fill_password_and_submit(self, password: str) -> None:
        """
        Submit the password step.

        Raises:
            SignInBlockedError: If the identifier was rejected.
            FlowTimeoutError: If neither the password prompt nor a rejection appears.
        """
        timeout = self.timeouts.password_prompt
        result = await self.classify_identifier_step(timeout)
        if result.outcome is Outcome.BLOCKED:
            self.state = LoginState.BLOCKED
            raise SignInBlockedError("after identifier submission")
        if result.is_unknown:
            raise FlowTimeoutError("the password prompt", timeout, {"url": self.page.url})

        await self.submit_password(password)

    async def classify_sign_in(self, timeout: float) -> RaceResult:
        """Race the authenticated inbox against the sign-in rejected page."""
        return await race_outcome(
            [
                Detector.visible(
                    Outcome.SUCCESS, self.compose_button, timeout, name="inbox"
                ),
                Detector.visible(
                    Outcome.BLOCKED,
                    self.sign_in_rejected_heading,
                    timeout,
                    name="sign-in rejected",
                ),
            ],
            action="sign-in",
        )

    async def wait_for_inbox_or_block(self) -> LoginState:
        """
        Resolve the terminal state after the password step.

        Raises:
            SignInBlockedError: If the sign-in was rejected.
            UnknownOutcomeError: If neither the inbox nor a rejection showed up.
        """
        result = await self.classify_sign_in(self.timeouts.sign_in)
        if result.outcome is Outcome.BLOCKED:
            self.state = LoginState.BLOCKED
            raise SignInBlockedError("after password submission")
        if result.is_unknown:
            raise UnknownOutcomeError("sign-in", result)
        self.state = LoginState.AUTHENTICATED
        return self.state

    async def login(self, username: str, password: str) -> LoginState:
        """
        Sign in and wait for the inbox.

        No step is retried; call again to start over.
        """
        await self.goto()
        await self.fill_email_and_next(username)
        await self.dismiss_interstitials()
        await self.fill_password_and_submit(password)
        await self.dismiss_interstitials()
        state = await self.wait_for_inbox_or_block()
        logger.info("Signed in as %s", username)
        return state

    async def login_with(self, credentials: Credentials) -> LoginState:
        return await self.login(credentials.username, credentials.password)

    async def attempt_sign_in(
        self, username: str, password: Optional[str] = None
    ) -> LoginState:
        """
        Sign in expecting a possible rejection, and report where it ended.

        A rejected identifier usually never reaches the password step. With
        a password, the password prompt is raced against the rejection page
        and the password is only entered if the prompt wins. Each race is
        bounded by the ``rejected_sign_in`` budget.

        Returns:
            ``LoginState.BLOCKED`` or ``LoginState.AUTHENTICATED``.

        Raises:
            UnknownOutcomeError: If neither state showed up in time.
        """
        await self.goto()
        await self.fill_email_and_next(username)
        await self.dismiss_interstitials()

        if password is not None:
            step = await self.classify_identifier_step(self.timeouts.rejected_sign_in)
            if step.outcome is Outcome.BLOCKED:
                self.state = LoginState.BLOCKED
                return self.state
            if step.is_unknown:
                raise UnknownOutcomeError("sign-in", step)
            await self.submit_password(password)
            await self.dismiss_interstitials()

        result = await self.classify_sign_in(self.timeouts.rejected_sign_in)
        if result.is_unknown:
            raise UnknownOutcomeError("sign-in", result)
        if result.outcome is Outcome.BLOCKED:
            self.state = LoginState.BLOCKED
        else:
            self.state = LoginState.AUTHENTICATED
        return self.state
