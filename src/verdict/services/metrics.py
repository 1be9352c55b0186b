"""
Performance metrics for the engine.

Counts requests, keeps a running mean of evaluation time, tracks how often
each policy was applicable, and the share of decisions per decision value
and of requests that produced errors.
"""

from collections.abc import Iterable

from pydantic import BaseModel, Field

from verdict.schema import AuthorizationDecision, Decision

MIN_EVALUATION_TIME_MS = 0.001


class EvaluationMetrics(BaseModel):
    """Snapshot of collected metrics."""

    total_requests: int = 0
    average_evaluation_time_ms: float = 0.0
    policy_hits: dict[str, int] = Field(default_factory=dict)
    decision_distribution: dict[Decision, int] = Field(
        default_factory=lambda: {decision: 0 for decision in Decision}
    )
    error_rate: float = 0.0


class MetricsCollector:
    """
    Aggregates per-decision metrics.

    Args:
        enabled: Whether record() has any effect
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._metrics = EvaluationMetrics()

    def record(
        self,
        decision: AuthorizationDecision,
        evaluation_time_ms: float,
        policy_ids: Iterable[str] = (),
    ) -> None:
        """
        Record one evaluation.

        Args:
            decision: The decision returned to the caller
            evaluation_time_ms: Elapsed time; floored at 0.001ms
            policy_ids: IDs of the applicable policies
        """
        if not self.enabled:
            return

        m = self._metrics
        m.total_requests += 1
        n = m.total_requests

        elapsed = max(evaluation_time_ms, MIN_EVALUATION_TIME_MS)
        m.average_evaluation_time_ms = (m.average_evaluation_time_ms * (n - 1) + elapsed) / n

        m.decision_distribution[decision.decision] += 1

        for policy_id in policy_ids:
            m.policy_hits[policy_id] = m.policy_hits.get(policy_id, 0) + 1

        failed = 1 if decision.evaluation_details.errors else 0
        m.error_rate = (m.error_rate * (n - 1) + failed) / n

    def get_metrics(self) -> EvaluationMetrics:
        """A deep copy of the current metrics."""
        return self._metrics.model_copy(deep=True)

    def get_policy_hits(self, policy_id: str) -> int:
        return self._metrics.policy_hits.get(policy_id, 0)

    def get_top_policies(self, limit: int = 10) -> list[tuple[str, int]]:
        """Policies by hit count, most hit first."""
        ranked = sorted(self._metrics.policy_hits.items(), key=lambda item: item[1], reverse=True)
        return ranked[:limit]

    def get_summary(self) -> str:
        """Plain-text summary, one metric per line."""
        m = self._metrics
        lines = [
            "=== Verdict Engine Metrics ===",
            f"Total Requests: {m.total_requests}",
            f"Average Evaluation Time: {m.average_evaluation_time_ms:.2f}ms",
            f"Error Rate: {m.error_rate * 100:.2f}%",
            "",
            "Decision Distribution:",
        ]
        for decision in Decision:
            count = m.decision_distribution[decision]
            share = count / m.total_requests * 100 if m.total_requests else 0.0
            lines.append(f"  {decision.value}: {count} ({share:.2f}%)")

        top = self.get_top_policies()
        if top:
            lines.extend(["", "Top Policies:"])
            lines.extend(f"  {policy_id}: {hits} hits" for policy_id, hits in top)

        return "\n".join(lines)

    def reset(self) -> None:
        self._metrics = EvaluationMetrics()

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False
