"""
Audit trail of access decisions.

Every evaluation can be recorded as an AccessLogEntry: who asked for what,
what was decided, which policies matched and how long it took. Entries
live in a bounded in-memory buffer; an optional on_log callback (sync or
async) lets the host forward them elsewhere.
"""

import inspect
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from verdict.errors import get_error_message
from verdict.schema import (
    Action,
    AuthorizationDecision,
    Decision,
    Environment,
    Obligation,
    Request,
    Resource,
    Subject,
)

logger = logging.getLogger(__name__)

OnLogCallback = Callable[["AccessLogEntry"], Awaitable[None] | None]


class AccessLogEntry(BaseModel):
    """
    One recorded decision.

    The entities are those of the request as the caller passed it, before
    provider enhancement.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    request_id: str
    subject: Subject
    resource: Resource
    action: Action
    environment: Environment | None = None
    decision: Decision
    matched_policies: list[str] = Field(default_factory=list)
    obligations: list[Obligation] = Field(default_factory=list)
    evaluation_time_ms: float = 0.0
    errors: list[str] = Field(default_factory=list)


class AuditStatistics(BaseModel):
    """Aggregate view over the buffered entries."""

    total: int = 0
    by_decision: dict[Decision, int] = Field(
        default_factory=lambda: {decision: 0 for decision in Decision}
    )
    with_errors: int = 0
    average_evaluation_time_ms: float = 0.0


_ENTRIES_ADAPTER = TypeAdapter(list[AccessLogEntry])


class AuditService:
    """
    In-memory audit log.

    Args:
        enabled: Record entries at all
        max_logs: Buffer size; the oldest entries are dropped first
        on_log: Called with every new entry; failures are logged, not raised
    """

    def __init__(
        self,
        enabled: bool = True,
        max_logs: int = 10_000,
        on_log: OnLogCallback | None = None,
    ) -> None:
        self.enabled = enabled
        self.max_logs = max_logs
        self.on_log = on_log
        self._logs: deque[AccessLogEntry] = deque(maxlen=max_logs)

    async def log(
        self,
        request_id: str,
        request: Request,
        decision: AuthorizationDecision,
        evaluation_time_ms: float,
        errors: list[str] | None = None,
    ) -> AccessLogEntry | None:
        """
        Record a decision.

        Returns:
            The stored entry, or None when auditing is disabled
        """
        if not self.enabled:
            return None

        entry = AccessLogEntry(
            request_id=request_id,
            subject=request.subject,
            resource=request.resource,
            action=request.action,
            environment=request.environment,
            decision=decision.decision,
            matched_policies=[policy.id for policy in decision.matched_policies],
            obligations=decision.obligations,
            evaluation_time_ms=evaluation_time_ms,
            errors=list(errors or []),
        )
        self._logs.append(entry)

        if self.on_log is not None:
            try:
                result = self.on_log(entry)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(
                    "Audit log callback failed for %s: %s",
                    request_id,
                    get_error_message(e),
                )

        return entry

    def get_logs(self, limit: int | None = None) -> list[AccessLogEntry]:
        """Buffered entries, oldest first; with a limit, only the most recent ones."""
        logs = list(self._logs)
        if limit:
            return logs[-limit:]
        return logs

    def clear(self) -> None:
        self._logs.clear()

    def count(self) -> int:
        return len(self._logs)

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    def get_logs_by_subject(self, subject_id: str) -> list[AccessLogEntry]:
        return [entry for entry in self._logs if entry.subject.id == subject_id]

    def get_logs_by_resource(self, resource_id: str) -> list[AccessLogEntry]:
        return [entry for entry in self._logs if entry.resource.id == resource_id]

    def get_logs_by_decision(self, decision: Decision) -> list[AccessLogEntry]:
        return [entry for entry in self._logs if entry.decision == decision]

    def get_error_logs(self) -> list[AccessLogEntry]:
        return [entry for entry in self._logs if entry.errors]

    def get_statistics(self) -> AuditStatistics:
        """Totals per decision, error count and mean evaluation time."""
        stats = AuditStatistics(total=len(self._logs))
        if not self._logs:
            return stats

        for entry in self._logs:
            stats.by_decision[entry.decision] += 1
            if entry.errors:
                stats.with_errors += 1

        stats.average_evaluation_time_ms = (
            sum(entry.evaluation_time_ms for entry in self._logs) / len(self._logs)
        )
        return stats

    def export_logs(self) -> str:
        """All buffered entries as a JSON array."""
        return _ENTRIES_ADAPTER.dump_json(list(self._logs), indent=2).decode()

    def __len__(self) -> int:
        return len(self._logs)

    def __repr__(self) -> str:
        return f"<AuditService: {len(self._logs)}/{self.max_logs} entries>"
