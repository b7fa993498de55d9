"""
Outcome race: which of several mutually exclusive UI states showed up first.

After a state-changing action (submitting credentials, sending a message)
the page can land in one of a handful of terminal states, in no fixed order
and with no guarantee any of them appears. Each possible state gets a
detector with its own timeout; all detectors run concurrently and the race
resolves on the first one that fires, or when every timeout has elapsed.

Classification is by priority: once the race resolves, detectors are
checked in list order and the first one that fired or is visible right now
wins. Callers list success detectors first so a success toast beats a
validation dialog that happens to be on screen at the same time.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Pattern, Sequence, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..models import Outcome, UnknownCause

logger = logging.getLogger(__name__)

WaitFn = Callable[[float], Awaitable[Any]]
ProbeFn = Callable[[], Awaitable[bool]]


@dataclass(frozen=True)
class Detector:
    """
    A predicate for one terminal UI state.

    ``wait`` blocks until the state is observable and raises a Playwright
    ``TimeoutError`` once ``timeout`` milliseconds pass. ``probe`` answers
    "is it observable right now" without waiting. A detector with a timeout
    of zero is probe-only: it is never awaited, only consulted during
    classification.
    """

    outcome: Outcome
    wait: WaitFn
    probe: ProbeFn
    timeout: float = 0
    reason: Optional[str] = None
    name: str = ""

    @classmethod
    def visible(
        cls,
        outcome: Outcome,
        locator: Locator,
        timeout: float,
        reason: Optional[str] = None,
        name: Optional[str] = None,
    ) -> "Detector":
        """Detector that fires when ``locator`` becomes visible."""

        async def wait(timeout_ms: float) -> None:
            await locator.wait_for(state="visible", timeout=timeout_ms)

        return cls(
            outcome=outcome,
            wait=wait,
            probe=locator.is_visible,
            timeout=timeout,
            reason=reason,
            name=name or repr(locator),
        )

    @classmethod
    def url(
        cls,
        outcome: Outcome,
        page: Page,
        pattern: Union[str, Pattern[str]],
        timeout: float,
        reason: Optional[str] = None,
        name: Optional[str] = None,
    ) -> "Detector":
        """Detector that fires when the page URL matches ``pattern``."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern

        async def wait(timeout_ms: float) -> None:
            await page.wait_for_url(regex, timeout=timeout_ms, wait_until="commit")

        async def probe() -> bool:
            return regex.search(page.url) is not None

        return cls(
            outcome=outcome,
            wait=wait,
            probe=probe,
            timeout=timeout,
            reason=reason,
            name=name or f"url~{regex.pattern}",
        )


@dataclass(frozen=True)
class RaceResult:
    """The single outcome selected by a race."""

    outcome: Outcome
    reason: Optional[str] = None
    cause: Optional[UnknownCause] = None
    detector: Optional[str] = None
    observed_text: Optional[str] = None
    elapsed_ms: float = 0.0

    @property
    def is_unknown(self) -> bool:
        return self.outcome is Outcome.UNKNOWN


async def _watch(detector: Detector) -> bool:
    """Wait for one detector. True if it fired, False if it timed out."""
    if detector.timeout <= 0:
        return False
    try:
        await detector.wait(detector.timeout)
    except PlaywrightTimeoutError:
        return False
    return True


async def _observed_text(surface: Locator) -> Optional[str]:
    try:
        text = await surface.inner_text(timeout=1000)
    except PlaywrightError as e:
        logger.debug("Could not read unrecognized surface: %s", e)
        return None
    return " ".join(text.split()) or None


async def race_outcome(
    detectors: Sequence[Detector],
    unrecognized: Optional[Locator] = None,
    action: str = "action",
) -> RaceResult:
    """
    Race ``detectors`` and return exactly one outcome.

    Args:
        detectors: Detectors in priority order, highest first.
        unrecognized: Optional catch-all surface (a generic alert or dialog).
            Only consulted when no detector fired; if visible the result is
            ``UNKNOWN`` with cause ``UNRECOGNIZED`` and its text attached.
        action: Name of the action being classified, for logging.

    Returns:
        The selected RaceResult. Never raises for timeouts: when no detector
        fires the result is ``Outcome.UNKNOWN``.
    """
    loop = asyncio.get_running_loop()
    started = loop.time()

    tasks = {
        asyncio.ensure_future(_watch(detector)): index
        for index, detector in enumerate(detectors)
    }
    fired: set[int] = set()
    pending = set(tasks)
    try:
        while pending and not fired:
            done, pending = await asyncio.wait(
                pending, return_when=asyncio.FIRST_COMPLETED
            )
            for task in done:
                if task.result():
                    fired.add(tasks[task])
    finally:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    for index, detector in enumerate(detectors):
        if index in fired or await detector.probe():
            result = RaceResult(
                outcome=detector.outcome,
                reason=detector.reason,
                detector=detector.name,
                elapsed_ms=(loop.time() - started) * 1000,
            )
            logger.info(
                "%s resolved to %s via %s after %.0fms",
                action,
                result.outcome.value,
                result.detector,
                result.elapsed_ms,
            )
            return result

    cause = UnknownCause.TIMEOUT
    observed = None
    if unrecognized is not None and await unrecognized.is_visible():
        cause = UnknownCause.UNRECOGNIZED
        observed = await _observed_text(unrecognized)

    result = RaceResult(
        outcome=Outcome.UNKNOWN,
        cause=cause,
        observed_text=observed,
        elapsed_ms=(loop.time() - started) * 1000,
    )
    logger.warning(
        "%s resolved to unknown (%s) after %.0fms%s",
        action,
        cause.value,
        result.elapsed_ms,
        f": {observed!r}" if observed else "",
    )
    return result
