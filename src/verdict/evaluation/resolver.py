"""
Attribute resolution for Verdict.

The AttributeResolver owns the engine's attribute providers and answers two
questions:

1. What is the value of attribute X in this request? (get_attribute_value)
2. What does this request look like once every provider has contributed?
   (enhance_request)

Resolution rules:
    - "id" resolves to the entity id for subject/resource/action, and "type"
      to the resource type, unless a path is given
    - Otherwise the category's attribute map is indexed, then an optional
      dotted path is walked through nested mappings only
    - Anything unresolvable is None

Provider failures never abort enhancement. Each failing provider is logged
as a warning and contributes nothing.
"""

import asyncio
import copy
import logging
import threading
from collections.abc import Iterable, Mapping
from typing import Any

from verdict.errors import get_error_message
from verdict.providers.base import AttributeContext, AttributeProvider, provider_key
from verdict.schema import AttributeCategory, Environment, Request

ENVIRONMENT_ENTITY_ID = "current"


class AttributeResolver:
    """
    Aggregates attribute providers and resolves attribute references.

    Providers are keyed by "category:name". Registering a provider under an
    existing key replaces the earlier one in place, so merge order stays the
    order of first registration.

    Mutation is guarded by a lock and replaces the provider mapping wholesale,
    so an in-flight enhancement keeps iterating the snapshot it started with.
    """

    def __init__(
        self,
        providers: Iterable[AttributeProvider] = (),
        logger: logging.Logger | None = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._providers: dict[str, AttributeProvider] = {}

        for provider in providers:
            self.add_provider(provider)

    # -------------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------------

    def add_provider(self, provider: AttributeProvider) -> str:
        """
        Register a provider.

        Args:
            provider: The provider to add

        Returns:
            The provider's key ("category:name")
        """
        key = provider_key(provider.category, provider.name)
        with self._lock:
            updated = dict(self._providers)
            updated[key] = provider
            self._providers = updated
        self.logger.debug("Attribute provider added: %s (%s)", provider.name, key)
        return key

    def remove_provider(self, key: str) -> bool:
        """
        Remove a provider by key.

        Returns:
            True if a provider was removed, False if the key was unknown
        """
        with self._lock:
            if key not in self._providers:
                return False
            updated = dict(self._providers)
            del updated[key]
            self._providers = updated
        self.logger.debug("Attribute provider removed: %s", key)
        return True

    def get_providers(self) -> list[AttributeProvider]:
        """All providers, in registration order."""
        return list(self._providers.values())

    def has_provider(self, key: str) -> bool:
        return key in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get_attribute_value(
        self,
        request: Request,
        category: AttributeCategory | str,
        attribute_id: str,
        path: str | None = None,
    ) -> Any:
        """
        Resolve one attribute from a request.

        Args:
            request: The (usually enhanced) request
            category: Attribute category
            attribute_id: Attribute name
            path: Optional dotted path into a nested mapping

        Returns:
            The value, or None if it cannot be resolved
        """
        category = AttributeCategory(category)

        if not path:
            if attribute_id == "id":
                if category == AttributeCategory.SUBJECT:
                    return request.subject.id
                if category == AttributeCategory.RESOURCE:
                    return request.resource.id
                if category == AttributeCategory.ACTION:
                    return request.action.id
            if attribute_id == "type" and category == AttributeCategory.RESOURCE:
                return request.resource.type

        source = _attribute_source(request, category)
        value = source.get(attribute_id)

        if path:
            for part in path.split("."):
                if not isinstance(value, Mapping):
                    return None
                value = value.get(part)

        return value

    # -------------------------------------------------------------------------
    # Enhancement
    # -------------------------------------------------------------------------

    async def enhance_request(
        self,
        request: Request,
        context: AttributeContext | None = None,
    ) -> Request:
        """
        Build a copy of the request with provider attributes merged in.

        The original request is never modified. Within each category,
        providers are queried concurrently and their results merged in
        registration order, later providers overriding earlier ones.

        Args:
            request: The incoming request
            context: Optional context forwarded to every provider

        Returns:
            The enhanced request
        """
        providers = self.get_providers()

        subject_extra, resource_extra, environment_extra = await asyncio.gather(
            self._collect(providers, AttributeCategory.SUBJECT, request.subject.id, context),
            self._collect(providers, AttributeCategory.RESOURCE, request.resource.id, context),
            self._collect(
                providers, AttributeCategory.ENVIRONMENT, ENVIRONMENT_ENTITY_ID, context
            ),
        )

        subject = request.subject.model_copy(
            update={"attributes": _merge(request.subject.attributes, subject_extra)}
        )
        resource = request.resource.model_copy(
            update={"attributes": _merge(request.resource.attributes, resource_extra)}
        )
        action = request.action.model_copy(
            update={"attributes": copy.deepcopy(request.action.attributes)}
        )

        environment = None
        if request.environment is not None or environment_extra is not None:
            base = request.environment.attributes if request.environment else {}
            environment = Environment(attributes=_merge(base, environment_extra or {}))

        return request.model_copy(
            update={
                "subject": subject,
                "resource": resource,
                "action": action,
                "environment": environment,
            }
        )

    async def _collect(
        self,
        providers: list[AttributeProvider],
        category: AttributeCategory,
        entity_id: str,
        context: AttributeContext | None,
    ) -> dict[str, Any] | None:
        """
        Query every provider of one category concurrently.

        Returns:
            Merged attributes, or None when the category has no provider
            that answered successfully
        """
        selected = [p for p in providers if p.category == category]
        if not selected:
            return None

        async def fetch(provider: AttributeProvider) -> Any:
            return await provider.get_attributes(entity_id, context)

        results = await asyncio.gather(*(fetch(p) for p in selected), return_exceptions=True)

        merged: dict[str, Any] | None = None
        for provider, result in zip(selected, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self.logger.warning(
                    "Error getting %s attributes from %s: %s",
                    category.value,
                    provider.name,
                    get_error_message(result),
                    extra={
                        "category": category.value,
                        "entity_id": entity_id,
                        "provider_name": provider.name,
                    },
                )
                continue
            if result is None:
                result = {}
            if not isinstance(result, Mapping):
                self.logger.warning(
                    "Ignoring %s attributes from %s: expected a mapping, got %s",
                    category.value,
                    provider.name,
                    type(result).__name__,
                )
                continue
            merged = {**(merged or {}), **result}

        return merged


def _attribute_source(request: Request, category: AttributeCategory) -> Mapping[str, Any]:
    if category == AttributeCategory.SUBJECT:
        return request.subject.attributes
    if category == AttributeCategory.RESOURCE:
        return request.resource.attributes
    if category == AttributeCategory.ACTION:
        return request.action.attributes
    if request.environment is None:
        return {}
    return request.environment.attributes


def _merge(base: Mapping[str, Any], extra: Mapping[str, Any] | None) -> dict[str, Any]:
    merged = copy.deepcopy(dict(base))
    if extra:
        merged.update(copy.deepcopy(dict(extra)))
    return merged
