"""
Flow primitives shared by the page objects.

- race: concurrent classification of which terminal UI state appeared
- interstitials: optional prompts dismissed when present
- locators: ordered selector fallback chains
"""

from .interstitials import (
    Interstitial,
    absorb_interstitial,
    absorb_interstitials,
    passkey_prompt,
    recovery_prompt,
    sign_in_interstitials,
)
from .locators import LocatorChain
from .race import Detector, RaceResult, race_outcome

__all__ = [
    "Detector",
    "RaceResult",
    "race_outcome",
    "Interstitial",
    "absorb_interstitial",
    "absorb_interstitials",
    "passkey_prompt",
    "recovery_prompt",
    "sign_in_interstitials",
    "LocatorChain",
]
