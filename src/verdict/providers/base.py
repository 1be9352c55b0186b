"""
Base classes for attribute providers.

Attribute providers are the Policy Information Points of Verdict: they
supply attributes that are not carried in the request itself (a user's
department from a directory, a document's owner from a database, the
current time).

This module defines:
- AttributeContext: Optional request/session information passed to providers
- AttributeProvider: Abstract base class every provider implements

Design Principles:
    - Providers serve exactly one category: subject, resource or environment
    - Providers are stateless with respect to a single request
    - A provider may raise; the resolver isolates the failure and treats
      it as an empty contribution
    - Providers are keyed by "category:name" on the resolver
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from verdict.errors import ConfigurationError
from verdict.schema import AttributeCategory

PROVIDER_CATEGORIES = frozenset({
    AttributeCategory.SUBJECT,
    AttributeCategory.RESOURCE,
    AttributeCategory.ENVIRONMENT,
})


@dataclass
class RequestInfo:
    """Transport-level details about the incoming request."""

    headers: dict[str, str | list[str] | None] = field(default_factory=dict)
    ip: str | None = None
    method: str | None = None
    path: str | None = None


@dataclass
class SessionInfo:
    """
    Session details.

    Attributes:
        id: Session identifier
        created_at: Session creation time in epoch milliseconds
    """

    id: str
    created_at: float | None = None


@dataclass
class AttributeContext:
    """
    Runtime context handed to providers alongside the entity id.

    Attributes:
        request: Transport request details (headers, ip, method, path)
        session: Session details
        attributes: Extra attributes merged last by the environment provider
    """

    request: RequestInfo | None = None
    session: SessionInfo | None = None
    attributes: dict[str, Any] = field(default_factory=dict)


def provider_key(category: AttributeCategory | str, name: str) -> str:
    """Build the registry key for a provider."""
    return f"{AttributeCategory(category).value}:{name}"


class AttributeProvider(ABC):
    """
    Abstract base class for all attribute providers.

    Subclasses must implement:
    - get_attributes(): Fetch attributes for one entity id
    - supports_attribute(): Whether the provider can supply an attribute

    Example:
        class DepartmentProvider(AttributeProvider):
            def __init__(self) -> None:
                super().__init__(AttributeCategory.SUBJECT, "departments")

            async def get_attributes(self, entity_id, context=None):
                return {"department": await lookup(entity_id)}

            def supports_attribute(self, attribute_id):
                return attribute_id == "department"
    """

    def __init__(
        self,
        category: AttributeCategory | str,
        name: str,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the provider.

        Args:
            category: subject, resource or environment
            name: Provider name, unique within its category
            logger: Optional logger; defaults to this module's logger

        Raises:
            ConfigurationError: If the category cannot carry providers
        """
        category = AttributeCategory(category)
        if category not in PROVIDER_CATEGORIES:
            raise ConfigurationError(
                field_name="category",
                reason=f"providers cannot serve the '{category.value}' category",
            )
        if not name:
            raise ConfigurationError(field_name="name", reason="provider name must not be empty")

        self.category = category
        self.name = name
        self.logger = logger or logging.getLogger(__name__)

    @property
    def key(self) -> str:
        """Registry key: "category:name"."""
        return provider_key(self.category, self.name)

    @abstractmethod
    async def get_attributes(
        self,
        entity_id: str,
        context: AttributeContext | None = None,
    ) -> dict[str, Any]:
        """
        Fetch attributes for one entity.

        Args:
            entity_id: Subject or resource id ("current" for environment providers)
            context: Optional request/session context

        Returns:
            Attribute name to value mapping (may be empty)
        """
        ...

    @abstractmethod
    def supports_attribute(self, attribute_id: str) -> bool:
        """Whether this provider can supply the given attribute."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(category={self.category.value!r}, name={self.name!r})"
