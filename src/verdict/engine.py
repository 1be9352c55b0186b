"""
Decision Engine for Verdict.

The Engine is the main orchestration layer: it turns a request and a list
of policies into an AuthorizationDecision. It coordinates between:
- Attribute Resolver: Enhances the request with provider attributes
- Policy Evaluator: Finds applicable policies and evaluates them
- Combining Algorithm: Folds the policy results into one decision
- Audit/Metrics: Record the outcome when enabled

Evaluation Flow:
    1. Validate the request (subject, resource and action ids are required)
    2. Enhance the request with provider attributes
    3. Find applicable policies (targets match)
    4. Evaluate them in order, collecting per-policy errors (a policy that
       does not parse is Indeterminate on its own)
    5. Combine the results (no results means NotApplicable)
    6. Assemble the decision with obligations, advice and details

Design Principles:
    - Never raises: any failure becomes an Indeterminate decision
    - Order-preserving: policies are evaluated in the order given
    - Reproducible: same request + same policies = same decision
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Iterable, Mapping
from typing import Any, TypeVar

from pydantic import ValidationError

from verdict.combining import get_algorithm
from verdict.errors import (
    EvaluationError,
    RequestValidationError,
    VerdictError,
    get_error_message,
)
from verdict.evaluation.evaluator import PolicyEvaluator
from verdict.evaluation.resolver import AttributeResolver
from verdict.functions.registry import ConditionFunction, FunctionRegistry
from verdict.providers.base import AttributeContext, AttributeProvider
from verdict.schema import (
    AuthorizationDecision,
    Decision,
    DecisionDetails,
    Effect,
    EngineConfig,
    Policy,
    PolicyResult,
    Request,
)
from verdict.services.audit import AccessLogEntry, AuditService, OnLogCallback
from verdict.services.metrics import EvaluationMetrics, MetricsCollector

T = TypeVar("T")


def generate_request_id() -> str:
    """Generate a unique request ID: req_<epoch ms>_<random>."""
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class Engine:
    """
    Attribute-based access control decision engine.

    Usage:
        engine = Engine(EngineConfig(combining_algorithm="permit-overrides"))
        engine.add_attribute_provider(InMemoryAttributeProvider("subject", "users", data))
        decision = await engine.evaluate(request, policies)
        if decision.permitted:
            ...

    Attributes:
        config: Engine configuration
        function_registry: Functions available to function conditions
        attribute_resolver: Registered attribute providers
        policy_evaluator: Target and condition evaluation
        audit_service: Audit trail (used when enable_audit_log is set)
        metrics_collector: Metrics (used when enable_performance_metrics is set)
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        attribute_providers: Iterable[AttributeProvider] = (),
        functions: Mapping[str, ConditionFunction] | None = None,
        logger: logging.Logger | None = None,
        on_audit_log: OnLogCallback | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            config: Engine configuration (defaults to EngineConfig())
            attribute_providers: Providers registered at construction
            functions: Custom condition functions, by name
            logger: Logger for engine components (defaults to module loggers)
            on_audit_log: Callback invoked with every audit entry
        """
        self.config = config or EngineConfig()
        self.logger = logger or logging.getLogger(__name__)

        self.function_registry = FunctionRegistry()
        for name, fn in (functions or {}).items():
            self.function_registry.register(name, fn)

        self.attribute_resolver = AttributeResolver(attribute_providers, logger=logger)
        self.policy_evaluator = PolicyEvaluator(
            self.function_registry,
            self.attribute_resolver,
            logger=logger,
        )

        self.audit_service = AuditService(
            enabled=self.config.enable_audit_log,
            max_logs=self.config.max_audit_logs,
            on_log=on_audit_log,
        )
        self.metrics_collector = MetricsCollector(
            enabled=self.config.enable_performance_metrics,
        )

    # =========================================================================
    # Evaluation
    # =========================================================================

    async def evaluate(
        self,
        request: Request | Mapping[str, Any],
        policies: Iterable[Policy | Mapping[str, Any]],
        context: AttributeContext | None = None,
    ) -> AuthorizationDecision:
        """
        Decide a request against a list of policies.

        Never raises. Failures produce an Indeterminate decision whose
        evaluation_details.errors explain what went wrong.

        Args:
            request: The request (a Request or its mapping form)
            policies: Policies in evaluation order (models or mappings)
            context: Optional context forwarded to attribute providers

        Returns:
            The authorization decision
        """
        start = time.perf_counter()
        request_id = generate_request_id()
        errors: list[str] = []
        policy_list = list(policies)
        parsed_request: Request | None = None
        applicable: list[Policy] = []

        try:
            parsed_request = self._coerce_request(request)
            applicable, results = await self._with_deadline(
                self._run_pipeline(parsed_request, policy_list, context, errors)
            )
            final = self.combine_results(results)

            elapsed_ms = _elapsed_ms(start)
            decision = AuthorizationDecision(
                decision=final,
                obligations=self.policy_evaluator.collect_obligations(results),
                advice=self.policy_evaluator.collect_advice(results),
                matched_policies=[
                    result.policy
                    for result in results
                    if result.decision in (Decision.PERMIT, Decision.DENY)
                ],
                evaluation_details=DecisionDetails(
                    total_policies=len(policy_list),
                    applicable_policies=len(applicable),
                    evaluation_time_ms=elapsed_ms,
                    errors=errors,
                ),
            )
        except Exception as e:
            message = get_error_message(e)
            errors.append(message)
            applicable = []
            self.logger.error(
                "Error during policy evaluation: %s",
                message,
                extra={"request_id": request_id},
                exc_info=not isinstance(e, VerdictError),
            )

            elapsed_ms = _elapsed_ms(start)
            decision = AuthorizationDecision(
                decision=Decision.INDETERMINATE,
                evaluation_details=DecisionDetails(
                    total_policies=len(policy_list),
                    applicable_policies=0,
                    evaluation_time_ms=elapsed_ms,
                    errors=errors,
                ),
            )

        if self.config.enable_performance_metrics:
            self.metrics_collector.record(decision, elapsed_ms, [p.id for p in applicable])

        if self.config.enable_audit_log:
            await self.audit_service.log(
                request_id,
                parsed_request or Request(),
                decision,
                elapsed_ms,
                errors,
            )

        return decision

    def evaluate_sync(
        self,
        request: Request | Mapping[str, Any],
        policies: Iterable[Policy | Mapping[str, Any]],
        context: AttributeContext | None = None,
    ) -> AuthorizationDecision:
        """Run evaluate() in a fresh event loop; for callers without one."""
        return asyncio.run(self.evaluate(request, policies, context))

    async def _run_pipeline(
        self,
        request: Request,
        policies: list[Policy | Mapping[str, Any]],
        context: AttributeContext | None,
        errors: list[str],
    ) -> tuple[list[Policy], list[PolicyResult]]:
        self.validate_request(request)

        parsed: list[tuple[int, Policy]] = []
        ordered: list[tuple[int, PolicyResult]] = []
        for position, entry in enumerate(policies):
            if isinstance(entry, Policy):
                parsed.append((position, entry))
                continue
            try:
                parsed.append((position, Policy.model_validate(entry)))
            except ValidationError as e:
                ordered.append((position, self._reject_policy(entry, e, errors)))

        enhanced = await self.attribute_resolver.enhance_request(request, context)
        applicable = await self.policy_evaluator.find_applicable_policies(
            enhanced, [policy for _, policy in parsed]
        )
        results = await self.policy_evaluator.evaluate_policies(enhanced, applicable, errors)

        # applicable is an ordered subsequence of parsed
        remaining = iter(zip(applicable, results))
        pending = next(remaining, None)
        for position, policy in parsed:
            if pending is not None and pending[0] is policy:
                ordered.append((position, pending[1]))
                pending = next(remaining, None)

        ordered.sort(key=lambda item: item[0])
        return applicable, [result for _, result in ordered]

    def _reject_policy(
        self,
        entry: Any,
        error: ValidationError,
        errors: list[str],
    ) -> PolicyResult:
        """Turn a policy that does not parse into an Indeterminate result."""
        raw = entry if isinstance(entry, Mapping) else {}
        raw_id = raw.get("id")
        policy_id = raw_id if isinstance(raw_id, str) and raw_id else "unknown"

        reason = "; ".join(_describe_validation_issue(issue) for issue in error.errors())
        rejection = EvaluationError.malformed_policy(policy_id, reason)
        message = f"Policy evaluation error: {rejection.message}"
        errors.append(message)
        self.logger.error(
            "Error parsing policy %s: %s",
            policy_id,
            reason,
            extra={"policy_id": policy_id},
        )

        try:
            effect = Effect(raw.get("effect"))
        except ValueError:
            effect = Effect.DENY
        placeholder = Policy.model_construct(id=policy_id, effect=effect)
        return PolicyResult(decision=Decision.INDETERMINATE, policy=placeholder, reason=message)

    async def _with_deadline(self, awaitable: Awaitable[T]) -> T:
        limit = self.config.max_evaluation_time
        if limit is None:
            return await awaitable
        try:
            async with asyncio.timeout(limit / 1000):
                return await awaitable
        except TimeoutError as e:
            raise EvaluationError.timeout(limit) from e

    def combine_results(self, results: list[PolicyResult]) -> Decision:
        """
        Combine policy results with the configured algorithm.

        Raises:
            CombiningAlgorithmError: If the configured algorithm is unknown
        """
        if not results:
            return Decision.NOT_APPLICABLE
        return get_algorithm(self.config.combining_algorithm).combine(results)

    @staticmethod
    def validate_request(request: Request) -> None:
        """
        Check the identifiers every request must carry.

        Raises:
            RequestValidationError: If subject, resource or action id is empty
        """
        if not request.subject.id:
            raise RequestValidationError.missing_field("Subject ID")
        if not request.resource.id:
            raise RequestValidationError.missing_field("Resource ID")
        if not request.action.id:
            raise RequestValidationError.missing_field("Action ID")

    @staticmethod
    def _coerce_request(request: Request | Mapping[str, Any]) -> Request:
        if isinstance(request, Request):
            return request
        if not isinstance(request, Mapping):
            raise RequestValidationError.invalid_field(
                "request", f"expected a mapping, got {type(request).__name__}"
            )
        return Request.model_validate(request)

    # =========================================================================
    # Registration
    # =========================================================================

    def register_function(self, name: str, fn: ConditionFunction) -> None:
        """Register a custom condition function."""
        self.function_registry.register(name, fn)

    def add_attribute_provider(self, provider: AttributeProvider) -> str:
        """
        Register an attribute provider.

        Returns:
            The key to pass to remove_attribute_provider ("category:name")
        """
        return self.attribute_resolver.add_provider(provider)

    def remove_attribute_provider(self, key: str) -> bool:
        """Remove an attribute provider by its "category:name" key."""
        return self.attribute_resolver.remove_provider(key)

    # =========================================================================
    # Observability
    # =========================================================================

    def get_metrics(self) -> EvaluationMetrics:
        return self.metrics_collector.get_metrics()

    def get_audit_logs(self, limit: int | None = None) -> list[AccessLogEntry]:
        return self.audit_service.get_logs(limit)

    def clear_audit_logs(self) -> None:
        self.audit_service.clear()

    def __repr__(self) -> str:
        return (
            f"<Engine: algorithm={self.config.combining_algorithm}, "
            f"providers={len(self.attribute_resolver)}, "
            f"functions={len(self.function_registry)}>"
        )


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def _describe_validation_issue(issue: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in issue["loc"]) or "policy"
    text = f"{location}: {issue['msg']}"
    if isinstance(issue.get("input"), str):
        text += f" (got {issue['input']!r})"
    return text
