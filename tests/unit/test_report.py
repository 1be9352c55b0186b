"""
Unit tests for report generation.

Tests cover:
- JSON decision reports and their schema
- JSON validation reports
- Console rendering of decisions and validation results
"""

import json
from io import StringIO

from rich.console import Console

from verdict.report import (
    build_decision_dict,
    decision_to_json,
    render_decision,
    render_validation_results,
    validation_to_json,
)
from verdict.schema import (
    Advice,
    AdviceType,
    AuthorizationDecision,
    Decision,
    DecisionDetails,
    Effect,
    Obligation,
    ObligationType,
    Policy,
    Request,
)
from verdict.validator import validate_policies


def make_decision() -> AuthorizationDecision:
    return AuthorizationDecision(
        decision=Decision.DENY,
        obligations=[Obligation(id="notify-security", type=ObligationType.NOTIFY, parameters={"channel": "sec"})],
        advice=[Advice(id="use-vpn", type=AdviceType.RECOMMENDATION)],
        matched_policies=[
            Policy(id="deny-contractors", effect=Effect.DENY, description="No contractors"),
        ],
        evaluation_details=DecisionDetails(
            total_policies=3,
            applicable_policies=2,
            evaluation_time_ms=1.23456,
            errors=["Policy evaluation error: boom"],
        ),
    )


def capture() -> tuple[Console, StringIO]:
    buffer = StringIO()
    return Console(file=buffer, width=120, force_terminal=False, color_system=None), buffer


class TestJsonReport:
    """Tests for JSON output."""

    def test_schema(self) -> None:
        """The report carries every key, whatever the decision."""
        report = build_decision_dict(make_decision())
        assert set(report) == {
            "report_version",
            "generated_at",
            "decision",
            "obligations",
            "advice",
            "matched_policies",
            "evaluation_details",
        }
        assert report["decision"] == "Deny"
        assert report["matched_policies"] == ["deny-contractors"]
        assert report["obligations"][0]["type"] == "notify"
        assert report["evaluation_details"]["evaluation_time_ms"] == 1.235

    def test_with_request(self, sample_request: Request) -> None:
        """The request is included when given."""
        report = json.loads(decision_to_json(make_decision(), sample_request))
        assert report["request"]["subject"]["id"] == "alice"

    def test_validation(self) -> None:
        """Validation reports list each policy with its validity."""
        results = validate_policies([{"id": "ok", "effect": "Permit"}, {"id": "bad"}])
        report = json.loads(validation_to_json(results))
        assert report["valid"] is False
        assert [(p["policy_id"], p["valid"]) for p in report["policies"]] == [("ok", True), ("bad", False)]


class TestConsoleReport:
    """Tests for console output."""

    def test_render_decision(self, sample_request: Request) -> None:
        """The decision, matched policies, obligations, advice and errors are shown."""
        console, buffer = capture()
        render_decision(make_decision(), console=console, request=sample_request)
        output = buffer.getvalue()
        assert "DENY" in output
        assert "alice" in output
        assert "deny-contractors" in output
        assert "notify-security" in output
        assert "use-vpn" in output
        assert "Policy evaluation error: boom" in output

    def test_verbose_shows_parameters(self) -> None:
        """Verbose mode shows obligation parameters."""
        console, buffer = capture()
        render_decision(make_decision(), console=console, verbose=True)
        assert "channel=sec" in buffer.getvalue()

    def test_render_validation(self) -> None:
        """Validation output ends with a summary line."""
        console, buffer = capture()
        results = validate_policies([{"id": "ok", "effect": "Permit"}, {"id": "bad"}])
        render_validation_results(results, console=console)
        output = buffer.getvalue()
        assert "ok" in output
        assert "2 policies checked, 1 invalid" in output
