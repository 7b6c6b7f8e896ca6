"""Execution gate: may this action fire right now?

Rules, first match wins:
  1. mode OFF                                   → blocked "mode_off"
  2. conversation ai_paused                     → blocked "conversation_paused"
  3. mode MANUAL and status != approved         → blocked "manual_requires_approval"
  4. mode LIVE, thread cannot auto-send, and
     status != approved                         → blocked "live_requires_approval"
  5. otherwise                                  → allowed

A thread can auto-send when it does not require approval or has autopilot on.
The global mode is checked first so it overrides any per-thread trust.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict

from config import OperatingMode

MODE_OFF = "mode_off"
CONVERSATION_PAUSED = "conversation_paused"
MANUAL_REQUIRES_APPROVAL = "manual_requires_approval"
LIVE_REQUIRES_APPROVAL = "live_requires_approval"

# Reasons that mean "a human can still approve this", as opposed to a hard stop.
APPROVAL_REASONS = (MANUAL_REQUIRES_APPROVAL, LIVE_REQUIRES_APPROVAL)


class PolicyContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    ai_paused: bool = False
    approval_required: bool = True
    autopilot_allowed: bool = False

    @property
    def can_auto_send(self) -> bool:
        return (not self.approval_required) or self.autopilot_allowed

    @classmethod
    def from_conversation(cls, conversation) -> "PolicyContext":
        """Policy for a conversation row; None (no thread) gives the defaults."""
        if conversation is None:
            return cls()
        return cls(
            ai_paused=bool(conversation.ai_paused),
            approval_required=conversation.approval_required is not False,
            autopilot_allowed=bool(conversation.autopilot_allowed),
        )


class GateDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[str] = None

    @property
    def needs_approval(self) -> bool:
        return self.reason in APPROVAL_REASONS


def evaluate_gate(mode: OperatingMode, policy: PolicyContext, status: str) -> GateDecision:
    if mode is OperatingMode.OFF:
        return GateDecision(allowed=False, reason=MODE_OFF)
    if policy.ai_paused:
        return GateDecision(allowed=False, reason=CONVERSATION_PAUSED)
    approved = status == "approved"
    if mode is OperatingMode.MANUAL and not approved:
        return GateDecision(allowed=False, reason=MANUAL_REQUIRES_APPROVAL)
    if mode is OperatingMode.LIVE and not policy.can_auto_send and not approved:
        return GateDecision(allowed=False, reason=LIVE_REQUIRES_APPROVAL)
    return GateDecision(allowed=True)
