"""
Pydantic models for the data that flows through a scenario.

Everything here is ephemeral: created at the start of a scenario from the
environment and the data file, discarded at the end.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import UnknownOutcomeError

RECIPIENT_PLACEHOLDER = "${RECIPIENT_EMAIL}"

DEFAULT_OUTBOX = (
    ("Playwright Test A", "Test body A"),
    ("Playwright Test B", "Test body B"),
    ("Playwright Test C", "Test body C"),
)


class Outcome(str, Enum):
    """Terminal UI state selected by an outcome race."""

    SUCCESS = "success"
    BLOCKED = "blocked"
    VALIDATION_ERROR = "validation-error"
    UNKNOWN = "unknown"


class UnknownCause(str, Enum):
    """Why a race ended in ``Outcome.UNKNOWN``."""

    # No detector fired and nothing else was on screen.
    TIMEOUT = "timeout"
    # No detector fired, but an alert or dialog we do not recognize was visible.
    UNRECOGNIZED = "unrecognized"


class LoginState(str, Enum):
    """States of the sign-in flow."""

    UNAUTHENTICATED = "unauthenticated"
    CREDENTIALS_ENTERED = "credentials-entered"
    AUTHENTICATED = "authenticated"
    BLOCKED = "blocked"


class SendState(str, Enum):
    """States of the message send flow."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    SENT = "sent"
    VALIDATION_FAILED = "validation-failed"
    UNKNOWN = "unknown"


class Credentials(BaseModel):
    """Sign-in credentials. Opaque strings, never validated locally."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(..., description="Account identifier")
    password: str = Field(default="", repr=False, description="Account password")


class Message(BaseModel):
    """A message to compose. Every field is optional."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    recipient: Optional[str] = Field(
        None, alias="to", description="Recipient address(es), comma separated"
    )
    subject: Optional[str] = Field(None, description="Message subject")
    body: Optional[str] = Field(None, description="Plain text body")

    @property
    def first_recipient(self) -> Optional[str]:
        """The first address of a comma separated recipient list."""
        if not self.recipient:
            return None
        return self.recipient.split(",")[0].strip() or None

    def addressed_to(
        self, recipient_override: Optional[str], fallback_recipient: Optional[str] = None
    ) -> "Message":
        """
        Resolve the recipient placeholder.

        An override replaces the recipient outright; otherwise the
        placeholder is substituted with ``fallback_recipient``, or with an
        empty string when there is none.
        """
        if recipient_override:
            return self.model_copy(update={"recipient": recipient_override})
        if self.recipient and RECIPIENT_PLACEHOLDER in self.recipient:
            resolved = self.recipient.replace(RECIPIENT_PLACEHOLDER, fallback_recipient or "")
            return self.model_copy(update={"recipient": resolved})
        return self

    def with_subject_suffix(self, token: Optional[str]) -> "Message":
        """Append a run token to the subject so sent-view lookups are unique."""
        if not token or self.subject is None:
            return self
        return self.model_copy(update={"subject": f"{self.subject} [{token}]"})


class ScenarioData(BaseModel):
    """Contents of the scenario data file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    emails: list[Message] = Field(
        default_factory=list, description="Message templates to send"
    )
    invalid_credentials: Optional[Credentials] = Field(
        None,
        alias="invalidCredentials",
        description="Credentials expected to be rejected",
    )

    def outbox(
        self,
        recipient_override: Optional[str] = None,
        fallback_recipient: Optional[str] = None,
        run_token: Optional[str] = None,
    ) -> list[Message]:
        """
        Build the list of messages to send in the compose scenario.

        Args:
            recipient_override: Replaces every template recipient when set.
            fallback_recipient: Used when no override is given, both for the
                template placeholder and for the built-in messages.
            run_token: Optional suffix appended to every subject.

        Returns:
            Messages ready to compose, in template order.
        """
        if self.emails:
            messages = [
                m.addressed_to(recipient_override, fallback_recipient) for m in self.emails
            ]
        else:
            recipient = recipient_override or fallback_recipient
            messages = [
                Message(recipient=recipient, subject=subject, body=body)
                for subject, body in DEFAULT_OUTBOX
            ]
        return [m.with_subject_suffix(run_token) for m in messages]


class SendResult(BaseModel):
    """Classification of a send attempt."""

    model_config = ConfigDict(frozen=True)

    sent: bool
    state: SendState
    reason: Optional[str] = None
    cause: Optional[UnknownCause] = None
    observed_text: Optional[str] = None

    @property
    def is_unknown(self) -> bool:
        return self.state is SendState.UNKNOWN

    def raise_for_unknown(self) -> "SendResult":
        """Raise ``UnknownOutcomeError`` when the send could not be classified."""
        if self.is_unknown:
            raise UnknownOutcomeError("send", self)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Original result shape: ``{"sent": bool, "reason": str}``."""
        data: dict[str, Any] = {"sent": self.sent}
        if self.reason is not None:
            data["reason"] = self.reason
        return data
