"""
Attribute providers (Policy Information Points).

The resolver depends only on the AttributeProvider contract; the concrete
classes here cover static data, request context, caching and composition.
"""

from verdict.providers.base import (
    AttributeContext,
    AttributeProvider,
    RequestInfo,
    SessionInfo,
    provider_key,
)
from verdict.providers.cached import CachedAttributeProvider
from verdict.providers.composite import CompositeAttributeProvider
from verdict.providers.environment import EnvironmentAttributeProvider
from verdict.providers.memory import InMemoryAttributeProvider

__all__ = [
    "AttributeContext",
    "AttributeProvider",
    "CachedAttributeProvider",
    "CompositeAttributeProvider",
    "EnvironmentAttributeProvider",
    "InMemoryAttributeProvider",
    "RequestInfo",
    "SessionInfo",
    "provider_key",
]
