"""
Verdict - attribute-based access control (ABAC) policy decision point.

Verdict decides whether a subject may perform an action on a resource by
evaluating attribute-based policies:
- Four-valued decisions (Permit, Deny, NotApplicable, Indeterminate)
- Targets and nested conditions over request attributes
- Six combining algorithms (deny-overrides, permit-overrides, ...)
- Pluggable attribute providers and condition functions
- Obligations, advice, audit log and metrics

Example usage:
    $ verdict evaluate request.yaml --policies policies.yaml
    $ verdict validate policies.yaml

    engine = Engine()
    decision = await engine.evaluate(request, load_policies("policies.yaml"))
"""

import logging

__version__ = "0.1.0"
__author__ = "Verdict Contributors"

from verdict.builder import AttributeRef, ConditionBuilder, PolicyBuilder, TargetBuilder
from verdict.engine import Engine
from verdict.errors import (
    AttributeResolutionError,
    CombiningAlgorithmError,
    ConfigurationError,
    EvaluationError,
    PolicyLoadError,
    PolicyValidationError,
    RequestValidationError,
    VerdictError,
)
from verdict.functions import FunctionRegistry
from verdict.providers import (
    AttributeContext,
    AttributeProvider,
    CachedAttributeProvider,
    CompositeAttributeProvider,
    EnvironmentAttributeProvider,
    InMemoryAttributeProvider,
)
from verdict.schema import (
    Action,
    Advice,
    AttributeCategory,
    AttributeReference,
    AuthorizationDecision,
    CombiningAlgorithm,
    ComparisonCondition,
    Decision,
    Effect,
    EngineConfig,
    Environment,
    FunctionCondition,
    LogicalCondition,
    Obligation,
    Policy,
    PolicyTarget,
    Request,
    Resource,
    Subject,
    load_engine_config,
    load_policies,
    load_policies_from_string,
    load_request,
    load_request_from_string,
)
from verdict.validator import validate_policies, validate_policy, validate_policy_or_raise

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "__author__",
    # Engine
    "Engine",
    "EngineConfig",
    "FunctionRegistry",
    # Requests and decisions
    "Action",
    "AuthorizationDecision",
    "Decision",
    "Environment",
    "Request",
    "Resource",
    "Subject",
    # Policies
    "Advice",
    "AttributeCategory",
    "AttributeReference",
    "CombiningAlgorithm",
    "ComparisonCondition",
    "Effect",
    "FunctionCondition",
    "LogicalCondition",
    "Obligation",
    "Policy",
    "PolicyTarget",
    # Builders
    "AttributeRef",
    "ConditionBuilder",
    "PolicyBuilder",
    "TargetBuilder",
    # Providers
    "AttributeContext",
    "AttributeProvider",
    "CachedAttributeProvider",
    "CompositeAttributeProvider",
    "EnvironmentAttributeProvider",
    "InMemoryAttributeProvider",
    # Loading and validation
    "load_engine_config",
    "load_policies",
    "load_policies_from_string",
    "load_request",
    "load_request_from_string",
    "validate_policies",
    "validate_policy",
    "validate_policy_or_raise",
    # Errors
    "AttributeResolutionError",
    "CombiningAlgorithmError",
    "ConfigurationError",
    "EvaluationError",
    "PolicyLoadError",
    "PolicyValidationError",
    "RequestValidationError",
    "VerdictError",
]
