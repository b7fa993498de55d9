"""
Page Object Model classes for the webmail flows.

These classes provide reusable selectors and methods for interacting
with the sign-in pages, the mailbox and the compose dialog.
"""

from .base_page import BasePage
from .compose_dialog import ComposeDialog
from .inbox_page import InboxPage
from .login_page import LoginPage

__all__ = [
    "BasePage",
    "LoginPage",
    "InboxPage",
    "ComposeDialog",
]
