"""
Custom exceptions for mailflow.

This module defines the error taxonomy surfaced by the flows: a required
wait that never resolved, a sign-in the remote system refused, and an
outcome race that ended without a recognized signal.
"""

from typing import Any, Optional, Sequence


class MailFlowError(Exception):
    """Base exception for all mailflow errors."""

    def __init__(self, message: str,
                 details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


# Flow Exceptions
class FlowError(MailFlowError):
    """Base exception for errors raised while driving a UI flow."""


class FlowTimeoutError(FlowError):
    """Raised when a required UI state never became observable."""

    def __init__(
        self,
        what: str,
        timeout_ms: float,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize flow timeout error.

        Args:
            what: Description of the UI state that was awaited.
            timeout_ms: The wait budget that elapsed, in milliseconds.
            details: Optional dictionary with additional error details.
        """
        super().__init__(
            f"Timed out after {timeout_ms:g}ms waiting for {what}", details)
        self.what = what
        self.timeout_ms = timeout_ms


class MessageNotFoundError(FlowTimeoutError):
    """Raised when a sent message cannot be found by its subject."""

    def __init__(
        self,
        subject: str,
        timeout_ms: float,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            f"message '{subject}' in the sent view", timeout_ms, details)
        self.subject = subject


class SignInBlockedError(FlowError):
    """Raised when the remote system rejects an automated sign-in."""

    def __init__(
        self,
        stage: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize sign-in blocked error.

        Args:
            stage: The login step at which the rejection was observed.
            details: Optional dictionary with additional error details.
        """
        super().__init__(
            f"Sign-in was blocked {stage}. Try a real Chrome channel "
            "(--browser-channel chrome) or a saved storage state.",
            details,
        )
        self.stage = stage


class UnknownOutcomeError(FlowError):
    """Raised when an outcome race ends without a recognized signal."""

    def __init__(
        self,
        action: str,
        result: Any = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize unknown outcome error.

        Args:
            action: The state-changing action whose outcome is unknown.
            result: The race result describing what was (not) observed.
            details: Optional dictionary with additional error details.
        """
        message = f"Outcome of '{action}' is unknown"
        cause = getattr(result, "cause", None)
        if cause is not None:
            message += f" ({cause.value})"
        observed = getattr(result, "observed_text", None)
        if observed:
            message += f": {observed!r}"
        super().__init__(message, details)
        self.action = action
        self.result = result


class ElementNotFoundError(FlowError):
    """Raised when every locator in a fallback chain fails to appear."""

    def __init__(
        self,
        name: str,
        candidates: Sequence[str] = (),
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(f"No locator matched '{name}'", details)
        self.name = name
        self.candidates = list(candidates)


# Configuration Exceptions
class ConfigurationError(MailFlowError):
    """Base exception for configuration-related errors."""


class MissingConfigError(ConfigurationError):
    """Raised when a required configuration value is missing."""

    def __init__(
        self, config_key: str, details: Optional[dict[str, Any]] = None
    ) -> None:
        """
        Initialize missing config error.

        Args:
            config_key: The missing configuration key.
            details: Optional dictionary with additional error details.
        """
        super().__init__(
            f"Missing required configuration: '{config_key}'", details)
        self.config_key = config_key


class InvalidConfigError(ConfigurationError):
    """Raised when a configuration value is invalid."""

    def __init__(
        self,
        config_key: str,
        value: Any,
        reason: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize invalid config error.

        Args:
            config_key: The configuration key with invalid value.
            value: The invalid value.
            reason: Optional reason why the value is invalid.
            details: Optional dictionary with additional error details.
        """
        message = f"Invalid configuration value for '{config_key}': {value}"
        if reason:
            message += f" - {reason}"
        super().__init__(message, details)
        self.config_key = config_key
        self.value = value
        self.reason = reason
