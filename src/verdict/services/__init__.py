"""Observability sinks: the audit log and the metrics collector."""

from verdict.services.audit import AccessLogEntry, AuditService, AuditStatistics
from verdict.services.metrics import EvaluationMetrics, MetricsCollector

__all__ = [
    "AccessLogEntry",
    "AuditService",
    "AuditStatistics",
    "EvaluationMetrics",
    "MetricsCollector",
]
