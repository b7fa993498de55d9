"""
Compose dialog Page Object: fill a new message, send it, classify the result.
"""

import logging
import re
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from ..config import MailFlowSettings
from ..flow import Detector, LocatorChain, race_outcome
from ..models import Message, Outcome, SendResult, SendState
from .base_page import BasePage

logger = logging.getLogger(__name__)

NEW_MESSAGE_DIALOG = re.compile(r"New Message|Compose", re.IGNORECASE)
TO_RECIPIENTS = re.compile(r"To recipients", re.IGNORECASE)
LEGACY_TO_FIELD = 'textarea[name="to"], textarea[aria-label="To"], input[aria-label="To"]'
SUBJECT_FIELD = 'input[name="subjectbox"]'
BODY_FIELD = 'div[aria-label="Message Body"]'
SEND_BUTTON = re.compile(r"^Send")
TOAST_REGIONS = '[role="alert"], [aria-live="assertive"], [aria-live="polite"]'
MESSAGE_SENT = re.compile(r"Message sent", re.IGNORECASE)
MISSING_RECIPIENT = re.compile(
    r"Missing recipient|Please specify at least one recipient", re.IGNORECASE
)
OK_BUTTON = re.compile(r"^OK$", re.IGNORECASE)
DISCARD_DRAFT = re.compile(r"Discard draft", re.IGNORECASE)
SAVE_AND_CLOSE = 'img[alt="Save & close"]'

MISSING_RECIPIENT_REASON = "missing-recipient"
UNKNOWN_REASON = "unknown"


class ComposeDialog(BasePage):
    """Page Object for the "New Message" compose dialog."""

    def __init__(self, page: Page, settings: Optional[MailFlowSettings] = None):
        super().__init__(page, settings)
        self.dialog = page.get_by_role("dialog", name=NEW_MESSAGE_DIALOG)
        self.state: Optional[SendState] = None

    # Selectors - Compose Form
    @property
    def to_field(self) -> LocatorChain:
        """Recipient token field: ARIA combobox, then the older textarea/input."""
        return LocatorChain(
            "To field",
            self.dialog.get_by_role("combobox", name=TO_RECIPIENTS).first,
            self.dialog.locator(LEGACY_TO_FIELD).first,
        )

    @property
    def subject_input(self) -> Locator:
        return self.dialog.locator(SUBJECT_FIELD).first

    @property
    def body_editor(self) -> Locator:
        return self.dialog.locator(BODY_FIELD).first

    @property
    def send_button(self) -> Locator:
        return self.dialog.get_by_role("button", name=SEND_BUTTON).first

    # Selectors - Outcome markers
    @property
    def sent_toast(self) -> Locator:
        """"Message sent" confirmation inside an alert or live region."""
        return self.page.locator(TOAST_REGIONS).filter(has_text=MESSAGE_SENT).first

    @property
    def sent_text(self) -> Locator:
        """Last-chance match for skins whose toast lacks a role or aria-live."""
        return self.page.get_by_text(MESSAGE_SENT).first

    @property
    def missing_recipient_dialog(self) -> Locator:
        return (
            self.page.get_by_role("alertdialog")
            .filter(has_text=MISSING_RECIPIENT)
            .first
        )

    @property
    def unrecognized_surface(self) -> Locator:
        """Any alert or dialog, used to tell "nothing happened" from "something else happened"."""
        return self.page.get_by_role("alertdialog").or_(self.page.get_by_role("alert")).first

    # Selectors - Cleanup
    @property
    def ok_button(self) -> Locator:
        return self.page.get_by_role("button", name=OK_BUTTON)

    @property
    def discard_controls(self) -> LocatorChain:
        return LocatorChain(
            "discard draft",
            self.dialog.get_by_role("button", name=DISCARD_DRAFT).first,
            self.dialog.locator(SAVE_AND_CLOSE).first,
        )

    # Actions
    async def open(self) -> None:
        """Open a fresh compose dialog from the inbox."""
        await self.compose_button.click()
        await self.wait_visible(
            self.dialog, self.timeouts.compose_open, "the compose dialog"
        )
        self.state = SendState.DRAFT

    async def fill_to(self, to: str) -> None:
        """Type a recipient and commit it as a token."""
        field = await self.to_field.resolve(self.timeouts.locator_probe)
        await field.click()
        try:
            await field.fill(to)
        except PlaywrightError:
            await self.page.keyboard.type(to)
        await self.press_key("Enter")

    async def fill_subject(self, subject: str) -> None:
        await self.subject_input.fill(subject)

    async def fill_body(self, body: str) -> None:
        await self.body_editor.click()
        await self.body_editor.press_sequentially(body)

    async def compose(self, message: Message) -> None:
        """Fill whichever fields ``message`` carries; missing fields stay empty."""
        if message.recipient:
            await self.fill_to(message.recipient)
        if message.subject is not None:
            await self.fill_subject(message.subject)
        if message.body is not None:
            await self.fill_body(message.body)

    async def send(self) -> SendResult:
        """
        Click Send and classify what happened.

        A recognized validation failure (missing recipient) is dismissed and
        the draft discarded before returning, so the session can open a fresh
        compose dialog. An unknown outcome is returned, not raised; use
        ``SendResult.raise_for_unknown`` to fail on it.
        """
        await self.send_button.click()
        self.state = SendState.SUBMITTED

        result = await race_outcome(
            [
                Detector.visible(
                    Outcome.SUCCESS,
                    self.sent_toast,
                    self.timeouts.send_success,
                    name="sent toast",
                ),
                Detector.visible(
                    Outcome.VALIDATION_ERROR,
                    self.missing_recipient_dialog,
                    self.timeouts.send_validation,
                    reason=MISSING_RECIPIENT_REASON,
                    name="missing recipient dialog",
                ),
                Detector.visible(Outcome.SUCCESS, self.sent_text, 0, name="sent text"),
            ],
            unrecognized=self.unrecognized_surface,
            action="send",
        )

        if result.outcome is Outcome.SUCCESS:
            self.state = SendState.SENT
            return SendResult(sent=True, state=self.state)

        if result.outcome is Outcome.VALIDATION_ERROR:
            await self.dismiss_validation_error()
            self.state = SendState.VALIDATION_FAILED
            return SendResult(sent=False, state=self.state, reason=result.reason)

        self.state = SendState.UNKNOWN
        return SendResult(
            sent=False,
            state=self.state,
            reason=UNKNOWN_REASON,
            cause=result.cause,
            observed_text=result.observed_text,
        )

    async def send_message(self, message: Message) -> SendResult:
        """Open, fill and send ``message`` in one go."""
        await self.open()
        await self.compose(message)
        return await self.send()

    async def dismiss_validation_error(self) -> None:
        """Best effort: acknowledge the error dialog, then throw the draft away."""
        try:
            await self.ok_button.click(timeout=self.timeouts.locator_probe)
        except PlaywrightError as e:
            logger.warning("Could not acknowledge the validation dialog: %s", e)
        await self.discard_draft()

    async def discard_draft(self) -> str:
        """
        Close the in-progress draft.

        Prefers "Discard draft", then the "Save & close" icon, then Escape.

        Returns:
            Which control was used, or "failed".
        """
        controls = self.discard_controls
        try:
            control = await controls.first_visible()
            if control is not None:
                await control.click()
                used = "discard" if control is controls.candidates[0] else "close"
            else:
                await self.press_key("Escape")
                used = "escape"
        except PlaywrightError as e:
            logger.warning("Could not discard the draft: %s", e)
            return "failed"

        logger.info("Draft discarded via %s", used)
        return used
