"""
Opportunistic dismissal of optional prompts shown during sign-in.

The identity provider sometimes slides a prompt in between two steps
("Sign in faster" passkey offer, "Make sure you can always sign in"
recovery nag). They are optional: if one shows up it is dismissed, if it
does not show up within a short bound the flow moves on. Absence is a
normal result, never an error.
"""

import logging
import re
from dataclasses import dataclass
from typing import Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

logger = logging.getLogger(__name__)

PASSKEY_HEADING = "Sign in faster"
PASSKEY_DISMISS = re.compile(r"^Not now$", re.IGNORECASE)
RECOVERY_HEADING = re.compile(r"Make sure you can always sign in", re.IGNORECASE)
RECOVERY_DISMISS = re.compile(r"^Cancel$", re.IGNORECASE)


@dataclass(frozen=True)
class Interstitial:
    """An optional prompt and the control that dismisses it."""

    name: str
    prompt: Locator
    dismiss: Locator


def passkey_prompt(page: Page) -> Interstitial:
    return Interstitial(
        name="passkey",
        prompt=page.get_by_role("heading", name=PASSKEY_HEADING),
        dismiss=page.get_by_role("button", name=PASSKEY_DISMISS),
    )


def recovery_prompt(page: Page) -> Interstitial:
    return Interstitial(
        name="recovery",
        prompt=page.get_by_role("heading", name=RECOVERY_HEADING),
        dismiss=page.get_by_role("button", name=RECOVERY_DISMISS),
    )


def sign_in_interstitials(page: Page) -> list[Interstitial]:
    """The prompts that may appear around credential submission, in check order."""
    return [passkey_prompt(page), recovery_prompt(page)]


async def absorb_interstitial(
    page: Page, interstitial: Interstitial, timeout: float = 2000
) -> bool:
    """
    Dismiss ``interstitial`` if it shows up within ``timeout`` ms.

    Returns:
        True if the prompt appeared and was dismissed, False otherwise.
    """
    try:
        await interstitial.prompt.wait_for(state="visible", timeout=timeout)
    except PlaywrightTimeoutError:
        return False

    if not await interstitial.dismiss.is_visible():
        logger.info("%s prompt shown without a dismiss control", interstitial.name)
        return False

    try:
        await interstitial.dismiss.click(timeout=timeout)
        await page.wait_for_load_state("domcontentloaded")
    except PlaywrightError as e:
        logger.warning("%s prompt could not be dismissed: %s", interstitial.name, e)
        return False

    logger.info("Dismissed %s prompt", interstitial.name)
    return True


async def absorb_interstitials(
    page: Page, interstitials: Sequence[Interstitial], timeout: float = 2000
) -> list[str]:
    """
    Clear zero or more optional prompts, in order.

    Total added latency is bounded by ``len(interstitials) * timeout`` plus
    the time spent dismissing prompts that did appear.

    Returns:
        Names of the prompts that were dismissed.
    """
    dismissed = []
    for interstitial in interstitials:
        if await absorb_interstitial(page, interstitial, timeout):
            dismissed.append(interstitial.name)
    return dismissed
