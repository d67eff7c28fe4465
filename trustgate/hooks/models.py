"""Hook events, wire messages and normalized decisions."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class HookEventName(str, Enum):
    """Lifecycle points where an external hook may intervene."""
    BEFORE_AGENT = "before-agent"
    AFTER_AGENT = "after-agent"


# Verdicts that stop (before-agent) or request continuation (after-agent)
BLOCKING_DECISIONS = {"block", "deny", "stop"}


@dataclass(frozen=True)
class HookEvent:
    """An event dispatched to a hook. ``payload`` is opaque to the channel."""
    name: str
    payload: str
    correlation_id: str


class HookRequest(BaseModel):
    """Request sent across the hook boundary."""
    model_config = ConfigDict(populate_by_name=True)

    event: str
    payload: str
    correlation_id: str = Field(alias="correlationId")

    @classmethod
    def from_event(cls, event: HookEvent) -> "HookRequest":
        return cls(event=event.name, payload=event.payload, correlation_id=event.correlation_id)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class HookResponse(BaseModel):
    """Verdict returned by a hook process. Unknown fields are ignored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    decision: str = "continue"
    reason: Optional[str] = None
    additional_context: Optional[str] = Field(default=None, alias="additionalContext")
    continue_: Optional[bool] = Field(default=None, alias="continue")
    stop_reason: Optional[str] = Field(default=None, alias="stopReason")

    def is_blocking(self) -> bool:
        return self.decision.strip().lower() in BLOCKING_DECISIONS or self.continue_ is False

    def effective_reason(self) -> Optional[str]:
        if self.continue_ is False and self.stop_reason:
            return self.stop_reason
        return self.reason or self.stop_reason


@dataclass(frozen=True)
class HookDecision:
    """Normalized outcome of firing a hook.

    ``ran=False`` means no hook produced a verdict; such a decision never blocks.
    """
    ran: bool
    blocked: bool = False
    reason: Optional[str] = None
    additional_context: Optional[str] = None

    def __post_init__(self):
        if not self.ran and self.blocked:
            raise ValueError("A hook that did not run cannot block")

    @classmethod
    def not_run(cls) -> "HookDecision":
        return cls(ran=False)

    @classmethod
    def from_response(cls, response: HookResponse) -> "HookDecision":
        return cls(
            ran=True,
            blocked=response.is_blocking(),
            reason=response.effective_reason(),
            additional_context=response.additional_context or None,
        )

    def is_blocking_decision(self) -> bool:
        return self.blocked

    def get_effective_reason(self) -> str:
        return self.reason or ""

    def get_additional_context(self) -> Optional[str]:
        return self.additional_context
