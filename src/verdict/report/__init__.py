"""
Reporting module for Verdict.

Output formats:
    - Console: Rich terminal output with the decision, matched policies,
      obligations, advice and errors
    - JSON: Structured output for programmatic consumption

Example:
    from verdict.report import decision_to_json, render_decision

    render_decision(decision)
    print(decision_to_json(decision))
"""

from verdict.report.console import render_decision, render_validation_results
from verdict.report.json import build_decision_dict, decision_to_json, validation_to_json

__all__ = [
    "build_decision_dict",
    "decision_to_json",
    "render_decision",
    "render_validation_results",
    "validation_to_json",
]
