"""Exhaustive gate truth table over mode × ai_paused × approval_required × autopilot × status."""
import itertools

import pytest

import pydantic

from config import DEFAULT_DISPATCH_TIMEOUT_SECONDS, GatewayConfig, OperatingMode
from gateway.gating import (
    CONVERSATION_PAUSED,
    LIVE_REQUIRES_APPROVAL,
    MANUAL_REQUIRES_APPROVAL,
    MODE_OFF,
    GateDecision,
    PolicyContext,
    evaluate_gate,
)

MODES = list(OperatingMode)
FLAGS = (False, True)
STATUSES = ("pending", "approved")


def _expected_reason(mode, ai_paused, approval_required, autopilot_allowed, status):
    if mode is OperatingMode.OFF:
        return MODE_OFF
    if ai_paused:
        return CONVERSATION_PAUSED
    if status == "approved":
        return None
    if mode is OperatingMode.MANUAL:
        return MANUAL_REQUIRES_APPROVAL
    trusted_thread = autopilot_allowed or not approval_required
    return None if trusted_thread else LIVE_REQUIRES_APPROVAL


CASES = list(itertools.product(MODES, FLAGS, FLAGS, FLAGS, STATUSES))


def test_table_covers_every_combination():
    assert len(CASES) == 48


@pytest.mark.parametrize("mode,ai_paused,approval_required,autopilot_allowed,status", CASES)
def test_gate_truth_table(mode, ai_paused, approval_required, autopilot_allowed, status):
    policy = PolicyContext(
        ai_paused=ai_paused,
        approval_required=approval_required,
        autopilot_allowed=autopilot_allowed,
    )
    decision = evaluate_gate(mode, policy, status)
    expected = _expected_reason(mode, ai_paused, approval_required, autopilot_allowed, status)
    assert decision == GateDecision(allowed=expected is None, reason=expected)


class TestPolicyContext:
    def test_no_conversation_gives_cautious_defaults(self):
        policy = PolicyContext.from_conversation(None)
        assert policy == PolicyContext(ai_paused=False, approval_required=True, autopilot_allowed=False)
        assert not policy.can_auto_send

    def test_autopilot_overrides_approval_requirement(self):
        assert PolicyContext(approval_required=True, autopilot_allowed=True).can_auto_send

    def test_needs_approval_only_for_approvable_reasons(self):
        assert GateDecision(allowed=False, reason=MANUAL_REQUIRES_APPROVAL).needs_approval
        assert GateDecision(allowed=False, reason=LIVE_REQUIRES_APPROVAL).needs_approval
        assert not GateDecision(allowed=False, reason=MODE_OFF).needs_approval
        assert not GateDecision(allowed=False, reason=CONVERSATION_PAUSED).needs_approval
        assert not GateDecision(allowed=True).needs_approval


class TestOperatingMode:
    def test_parse_is_case_insensitive(self):
        assert OperatingMode.parse("manual") is OperatingMode.MANUAL
        assert OperatingMode.parse(" off ") is OperatingMode.OFF

    def test_empty_means_live(self):
        assert OperatingMode.parse(None) is OperatingMode.LIVE
        assert OperatingMode.parse("") is OperatingMode.LIVE

    def test_unknown_value_raises(self):
        with pytest.raises(ValueError, match="AI_MODE"):
            OperatingMode.parse("autopilot")


class TestGatewayConfig:
    def test_empty_timeout_falls_back_to_default(self, monkeypatch):
        monkeypatch.setenv("DISPATCH_TIMEOUT_SECONDS", "")
        monkeypatch.setenv("AI_MODE", "")
        config = GatewayConfig.from_env()
        assert config.dispatch_timeout_seconds == DEFAULT_DISPATCH_TIMEOUT_SECONDS
        assert config.mode is OperatingMode.LIVE

    def test_timeout_read_from_env(self, monkeypatch):
        monkeypatch.setenv("DISPATCH_TIMEOUT_SECONDS", "2.5")
        assert GatewayConfig.from_env().dispatch_timeout_seconds == 2.5

    def test_with_mode_returns_a_new_config(self):
        config = GatewayConfig()
        manual = config.with_mode(OperatingMode.MANUAL)
        assert manual.mode is OperatingMode.MANUAL
        assert config.mode is OperatingMode.LIVE

    def test_config_is_immutable(self):
        config = GatewayConfig()
        with pytest.raises(pydantic.ValidationError):
            config.mode = OperatingMode.OFF

    def test_gate_decision_is_immutable(self):
        decision = GateDecision(allowed=True)
        with pytest.raises(pydantic.ValidationError):
            decision.allowed = False
