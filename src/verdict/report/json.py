"""
JSON report generator for Verdict.

Produces the structured form of decisions and validation results for
programmatic consumption.

Design Principles:
    - Complete data: decision, obligations, advice, matched policies, details
    - Consistent schema: the same keys whatever the decision
    - ISO timestamps
"""

import json
from datetime import UTC, datetime
from typing import Any

from verdict.schema import AuthorizationDecision, Request
from verdict.validator import PolicyValidationResult

REPORT_VERSION = "1.0"


def build_decision_dict(
    decision: AuthorizationDecision,
    request: Request | None = None,
) -> dict[str, Any]:
    """
    Build a report dictionary for a decision.

    Args:
        decision: The decision to report
        request: The request, included when given

    Returns:
        JSON-compatible dictionary
    """
    details = decision.evaluation_details
    report: dict[str, Any] = {
        "report_version": REPORT_VERSION,
        "generated_at": datetime.now(UTC).isoformat(),
        "decision": decision.decision.value,
        "obligations": [o.model_dump(mode="json") for o in decision.obligations],
        "advice": [a.model_dump(mode="json") for a in decision.advice],
        "matched_policies": [p.id for p in decision.matched_policies],
        "evaluation_details": {
            "total_policies": details.total_policies,
            "applicable_policies": details.applicable_policies,
            "evaluation_time_ms": round(details.evaluation_time_ms, 3),
            "errors": list(details.errors),
        },
    }
    if request is not None:
        report["request"] = request.model_dump(mode="json", exclude_none=True)
    return report


def decision_to_json(
    decision: AuthorizationDecision,
    request: Request | None = None,
    indent: int = 2,
) -> str:
    """Serialize a decision report to a JSON string."""
    return json.dumps(build_decision_dict(decision, request), indent=indent)


def validation_to_json(results: list[PolicyValidationResult], indent: int = 2) -> str:
    """Serialize validation results to a JSON string."""
    report = {
        "report_version": REPORT_VERSION,
        "valid": all(r.valid for r in results),
        "policies": [
            {**r.model_dump(mode="json"), "valid": r.valid}
            for r in results
        ],
    }
    return json.dumps(report, indent=indent)
