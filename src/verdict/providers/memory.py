"""In-memory attribute provider, for tests and small static deployments."""

import logging
from collections.abc import Mapping
from typing import Any

from verdict.providers.base import AttributeContext, AttributeProvider
from verdict.schema import AttributeCategory


class InMemoryAttributeProvider(AttributeProvider):
    """
    Serves attributes from a dict of entity id to attribute mapping.

    Example:
        provider = InMemoryAttributeProvider(
            "subject", "users", {"alice": {"department": "Eng"}}
        )
    """

    def __init__(
        self,
        category: AttributeCategory | str,
        name: str,
        initial_data: Mapping[str, Mapping[str, Any]] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(category, name, logger)
        self._attributes: dict[str, dict[str, Any]] = {}
        self._supported: set[str] = set()

        for entity_id, attributes in (initial_data or {}).items():
            self.add_attributes(entity_id, attributes)

    async def get_attributes(
        self,
        entity_id: str,
        context: AttributeContext | None = None,
    ) -> dict[str, Any]:
        return dict(self._attributes.get(entity_id, {}))

    def supports_attribute(self, attribute_id: str) -> bool:
        return attribute_id in self._supported

    def add_attributes(self, entity_id: str, attributes: Mapping[str, Any]) -> None:
        """Merge attributes into an entity's existing ones."""
        self._attributes[entity_id] = {**self._attributes.get(entity_id, {}), **attributes}
        self._supported.update(attributes)

    def remove_attributes(self, entity_id: str) -> None:
        self._attributes.pop(entity_id, None)

    def clear(self) -> None:
        self._attributes.clear()
        self._supported.clear()
