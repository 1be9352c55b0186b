"""
Caching wrapper around another attribute provider.

Results are cached per (entity id, context) for a fixed TTL. Failures from
the wrapped provider propagate and are never cached. Expired entries are
swept whenever a new entry is written.
"""

import json
import time
from dataclasses import asdict
from typing import Any

from verdict.providers.base import AttributeContext, AttributeProvider


def _context_key(context: AttributeContext | None) -> str:
    if context is None:
        return "{}"
    return json.dumps(asdict(context), sort_keys=True, default=str)


class CachedAttributeProvider(AttributeProvider):
    """
    TTL cache in front of a provider.

    The wrapper serves the wrapped provider's category under the name
    "cached-<name>".

    Args:
        provider: The provider to wrap
        ttl_seconds: How long a result stays fresh
    """

    def __init__(self, provider: AttributeProvider, ttl_seconds: float = 300) -> None:
        super().__init__(provider.category, f"cached-{provider.name}", provider.logger)
        self.provider = provider
        self.ttl = ttl_seconds
        self._cache: dict[tuple[str, str], tuple[dict[str, Any], float]] = {}

    async def get_attributes(
        self,
        entity_id: str,
        context: AttributeContext | None = None,
    ) -> dict[str, Any]:
        key = (entity_id, _context_key(context))
        cached = self._cache.get(key)
        if cached is not None and time.monotonic() - cached[1] < self.ttl:
            return dict(cached[0])

        attributes = await self.provider.get_attributes(entity_id, context)

        self._cache[key] = (dict(attributes), time.monotonic())
        self._sweep()
        return attributes

    def supports_attribute(self, attribute_id: str) -> bool:
        return self.provider.supports_attribute(attribute_id)

    def clear_cache(self) -> None:
        self._cache.clear()

    def clear_cache_for(self, entity_id: str) -> None:
        """Drop every cached entry for one entity, whatever its context."""
        for key in [k for k in self._cache if k[0] == entity_id]:
            del self._cache[key]

    def _sweep(self) -> None:
        now = time.monotonic()
        expired = [k for k, (_, stored) in self._cache.items() if now - stored >= self.ttl]
        for key in expired:
            del self._cache[key]

    def __len__(self) -> int:
        return len(self._cache)
