"""Composite attribute provider: several same-category providers behind one name."""

import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from verdict.errors import AttributeResolutionError, get_error_message
from verdict.providers.base import AttributeContext, AttributeProvider
from verdict.schema import AttributeCategory


class CompositeAttributeProvider(AttributeProvider):
    """
    Fans a lookup out to child providers and merges their answers.

    Children of another category are dropped at construction. Children are
    queried concurrently; a failing child is logged and contributes nothing.
    Later children override earlier ones.
    """

    def __init__(
        self,
        category: AttributeCategory | str,
        name: str,
        providers: Iterable[AttributeProvider] = (),
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(category, name, logger)
        self.providers = [p for p in providers if p.category == self.category]

    async def get_attributes(
        self,
        entity_id: str,
        context: AttributeContext | None = None,
    ) -> dict[str, Any]:
        providers = list(self.providers)

        async def fetch(provider: AttributeProvider) -> Any:
            return await provider.get_attributes(entity_id, context)

        results = await asyncio.gather(*(fetch(p) for p in providers), return_exceptions=True)

        merged: dict[str, Any] = {}
        for provider, result in zip(providers, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self.logger.warning(
                    "Error getting attributes from %s: %s",
                    provider.name,
                    get_error_message(result),
                    extra={
                        "category": provider.category.value,
                        "entity_id": entity_id,
                        "provider_name": provider.name,
                    },
                )
                continue
            if result is None:
                continue
            if not isinstance(result, Mapping):
                self.logger.warning(
                    "Ignoring attributes from %s: expected a mapping, got %s",
                    provider.name,
                    type(result).__name__,
                )
                continue
            merged.update(result)

        return merged

    def supports_attribute(self, attribute_id: str) -> bool:
        return any(p.supports_attribute(attribute_id) for p in self.providers)

    def add_provider(self, provider: AttributeProvider) -> None:
        """
        Add a child provider.

        Raises:
            AttributeResolutionError: If the provider serves another category
        """
        if provider.category != self.category:
            raise AttributeResolutionError.category_mismatch(
                expected=self.category.value,
                actual=provider.category.value,
                provider_name=provider.name,
            )
        self.providers.append(provider)

    def remove_provider(self, name: str) -> None:
        self.providers = [p for p in self.providers if p.name != name]
