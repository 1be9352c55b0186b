"""
Unit tests for attribute providers.

Tests cover:
- Base provider validation and keys
- In-memory provider data management
- Environment provider time, network and session attributes
- Cached provider TTL behavior
- Composite provider merging and failure isolation
"""

import logging
import time
from collections.abc import Generator
from datetime import UTC, datetime
from typing import Any

import pytest

from verdict.errors import AttributeResolutionError, ConfigurationError
from verdict.providers import (
    AttributeContext,
    AttributeProvider,
    CachedAttributeProvider,
    CompositeAttributeProvider,
    EnvironmentAttributeProvider,
    InMemoryAttributeProvider,
    RequestInfo,
    SessionInfo,
    provider_key,
)
from verdict.providers import environment
from verdict.providers.environment import extract_ip_address

# Sunday 02:30 in UTC, Saturday 21:30 at UTC-5
SATURDAY_NIGHT = datetime(2024, 3, 3, 2, 30, tzinfo=UTC)


class FrozenDatetime(datetime):
    @classmethod
    def now(cls, tz: Any = None) -> datetime:
        return SATURDAY_NIGHT.astimezone(tz)


@pytest.fixture
def eastern_clock(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Freeze the clock and run in a fixed UTC-5 local timezone."""
    monkeypatch.setattr(environment, "datetime", FrozenDatetime)
    monkeypatch.setenv("TZ", "EST+5")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


class CountingProvider(AttributeProvider):
    """Counts calls and optionally fails."""

    def __init__(self, category: str, name: str, attributes: dict[str, Any], fail: bool = False) -> None:
        super().__init__(category, name)
        self.attributes = attributes
        self.fail = fail
        self.calls = 0

    async def get_attributes(
        self,
        entity_id: str,
        context: AttributeContext | None = None,
    ) -> dict[str, Any]:
        self.calls += 1
        if self.fail:
            raise ConnectionError("ldap down")
        return dict(self.attributes)

    def supports_attribute(self, attribute_id: str) -> bool:
        return attribute_id in self.attributes


class TestAttributeProvider:
    """Tests for the provider base class."""

    def test_key(self) -> None:
        """Keys are 'category:name'."""
        provider = InMemoryAttributeProvider("resource", "docs")
        assert provider.key == "resource:docs"
        assert provider_key("subject", "users") == "subject:users"

    def test_action_category_rejected(self) -> None:
        """Providers cannot serve the action category."""
        with pytest.raises(ConfigurationError):
            InMemoryAttributeProvider("action", "verbs")

    def test_empty_name_rejected(self) -> None:
        """Providers need a name."""
        with pytest.raises(ConfigurationError):
            InMemoryAttributeProvider("subject", "")

    def test_unknown_category_rejected(self) -> None:
        """Unknown categories are rejected."""
        with pytest.raises(ValueError):
            InMemoryAttributeProvider("planet", "mars")


class TestInMemoryProvider:
    """Tests for the in-memory provider."""

    @pytest.mark.asyncio
    async def test_lookup(self) -> None:
        """Known ids return their attributes, unknown ids nothing."""
        provider = InMemoryAttributeProvider("subject", "users", {"alice": {"department": "Eng"}})
        assert await provider.get_attributes("alice") == {"department": "Eng"}
        assert await provider.get_attributes("bob") == {}
        assert provider.supports_attribute("department")

    @pytest.mark.asyncio
    async def test_add_merges(self) -> None:
        """add_attributes merges into existing attributes."""
        provider = InMemoryAttributeProvider("subject", "users", {"alice": {"department": "Eng"}})
        provider.add_attributes("alice", {"level": 3})
        assert await provider.get_attributes("alice") == {"department": "Eng", "level": 3}

    @pytest.mark.asyncio
    async def test_returns_copy(self) -> None:
        """Callers cannot mutate stored attributes."""
        provider = InMemoryAttributeProvider("subject", "users", {"alice": {"level": 3}})
        (await provider.get_attributes("alice"))["level"] = 99
        assert await provider.get_attributes("alice") == {"level": 3}

    @pytest.mark.asyncio
    async def test_remove_and_clear(self) -> None:
        """Entities can be removed or cleared."""
        provider = InMemoryAttributeProvider("subject", "users", {"alice": {"a": 1}, "bob": {"b": 2}})
        provider.remove_attributes("alice")
        assert await provider.get_attributes("alice") == {}
        provider.clear()
        assert await provider.get_attributes("bob") == {}
        assert not provider.supports_attribute("b")


class TestEnvironmentProvider:
    """Tests for the environment provider."""

    @pytest.mark.asyncio
    async def test_time_attributes(self) -> None:
        """Time attributes are always present."""
        attributes = await EnvironmentAttributeProvider().get_attributes("current")
        assert set(attributes) >= {"currentTime", "currentDate", "currentTimestamp", "dayOfWeek", "hourOfDay"}
        assert 0 <= attributes["dayOfWeek"] <= 6
        assert 0 <= attributes["hourOfDay"] <= 23
        assert attributes["currentDate"] == attributes["currentTime"].date().isoformat()

    @pytest.mark.asyncio
    async def test_local_day_and_hour_agree(self, eastern_clock: None) -> None:
        """Day of week and hour of day come from the same local time."""
        attributes = await EnvironmentAttributeProvider().get_attributes("current")
        assert attributes["dayOfWeek"] == 6
        assert attributes["hourOfDay"] == 21
        assert attributes["currentDate"] == "2024-03-03"

    @pytest.mark.asyncio
    async def test_context_attributes(self) -> None:
        """Request and session details become attributes; context attributes win."""
        context = AttributeContext(
            request=RequestInfo(headers={"user-agent": "curl/8", "origin": "https://app"}, ip="10.0.0.1"),
            session=SessionInfo(id="s-1"),
            attributes={"userAgent": "override", "tenant": "acme"},
        )
        attributes = await EnvironmentAttributeProvider().get_attributes("current", context)
        assert attributes["ipAddress"] == "10.0.0.1"
        assert attributes["origin"] == "https://app"
        assert attributes["sessionId"] == "s-1"
        assert attributes["sessionAge"] == 0
        assert attributes["userAgent"] == "override"
        assert attributes["tenant"] == "acme"

    @pytest.mark.asyncio
    async def test_static_attributes(self) -> None:
        """Static attributes are served until removed."""
        provider = EnvironmentAttributeProvider()
        provider.add_static_attribute("region", "eu-west")
        assert (await provider.get_attributes("current"))["region"] == "eu-west"
        assert provider.supports_attribute("region")
        provider.remove_static_attribute("region")
        assert "region" not in await provider.get_attributes("current")

    def test_ip_from_forwarded_for(self) -> None:
        """The first x-forwarded-for hop is the client."""
        request = RequestInfo(headers={"x-forwarded-for": "203.0.113.5, 10.0.0.1"})
        assert extract_ip_address(request) == "203.0.113.5"

    def test_ip_fallback_headers(self) -> None:
        """x-real-ip and cf-connecting-ip are used in that order."""
        assert extract_ip_address(RequestInfo(headers={"cf-connecting-ip": "198.51.100.7"})) == "198.51.100.7"
        assert extract_ip_address(RequestInfo(headers={"x-real-ip": ["192.0.2.1"]})) == "192.0.2.1"
        assert extract_ip_address(RequestInfo()) is None
        assert extract_ip_address(None) is None


class TestCachedProvider:
    """Tests for the caching wrapper."""

    def test_name(self) -> None:
        """The wrapper keeps the category and prefixes the name."""
        cached = CachedAttributeProvider(CountingProvider("subject", "ldap", {}))
        assert cached.key == "subject:cached-ldap"

    @pytest.mark.asyncio
    async def test_hits_cache(self) -> None:
        """Repeated lookups within the TTL hit the cache."""
        inner = CountingProvider("subject", "ldap", {"department": "Eng"})
        cached = CachedAttributeProvider(inner, ttl_seconds=60)
        assert await cached.get_attributes("alice") == {"department": "Eng"}
        assert await cached.get_attributes("alice") == {"department": "Eng"}
        assert inner.calls == 1
        assert len(cached) == 1

    @pytest.mark.asyncio
    async def test_context_is_part_of_key(self) -> None:
        """Different contexts are cached separately."""
        inner = CountingProvider("subject", "ldap", {"department": "Eng"})
        cached = CachedAttributeProvider(inner)
        await cached.get_attributes("alice")
        await cached.get_attributes("alice", AttributeContext(attributes={"tenant": "acme"}))
        assert inner.calls == 2

    @pytest.mark.asyncio
    async def test_expiry(self) -> None:
        """A zero TTL never serves from the cache."""
        inner = CountingProvider("subject", "ldap", {"department": "Eng"})
        cached = CachedAttributeProvider(inner, ttl_seconds=0)
        await cached.get_attributes("alice")
        await cached.get_attributes("alice")
        assert inner.calls == 2

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        """Clearing drops cached entries."""
        inner = CountingProvider("subject", "ldap", {"department": "Eng"})
        cached = CachedAttributeProvider(inner)
        await cached.get_attributes("alice")
        await cached.get_attributes("bob")
        cached.clear_cache_for("alice")
        assert len(cached) == 1
        cached.clear_cache()
        assert len(cached) == 0

    @pytest.mark.asyncio
    async def test_failures_not_cached(self) -> None:
        """Failures propagate and are not cached."""
        inner = CountingProvider("subject", "ldap", {}, fail=True)
        cached = CachedAttributeProvider(inner)
        with pytest.raises(ConnectionError):
            await cached.get_attributes("alice")
        assert len(cached) == 0


class TestCompositeProvider:
    """Tests for the composite provider."""

    def test_filters_other_categories(self) -> None:
        """Children of another category are dropped."""
        composite = CompositeAttributeProvider(
            "subject",
            "all-users",
            [CountingProvider("subject", "a", {}), CountingProvider("resource", "b", {})],
        )
        assert [p.name for p in composite.providers] == ["a"]

    @pytest.mark.asyncio
    async def test_merges_later_wins(self) -> None:
        """Later children override earlier ones."""
        composite = CompositeAttributeProvider(
            "subject",
            "all-users",
            [
                CountingProvider("subject", "a", {"level": 1, "site": "eu"}),
                CountingProvider("subject", "b", {"level": 2}),
            ],
        )
        assert await composite.get_attributes("alice") == {"level": 2, "site": "eu"}
        assert composite.supports_attribute("site")

    @pytest.mark.asyncio
    async def test_failing_child_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        """A failing child is logged and contributes nothing."""
        composite = CompositeAttributeProvider(
            "subject",
            "all-users",
            [CountingProvider("subject", "down", {}, fail=True), CountingProvider("subject", "up", {"a": 1})],
        )
        with caplog.at_level(logging.WARNING, logger="verdict"):
            assert await composite.get_attributes("alice") == {"a": 1}
        assert "Error getting attributes from down: ldap down" in caplog.text

    @pytest.mark.asyncio
    async def test_non_mapping_child_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        """A child answering with something other than a mapping is skipped."""
        garbled = CountingProvider("subject", "garbled", {})

        async def answer_with_list(entity_id: str, context: AttributeContext | None = None) -> Any:
            return ["not", "a", "mapping"]

        garbled.get_attributes = answer_with_list  # type: ignore[method-assign]
        composite = CompositeAttributeProvider(
            "subject",
            "all-users",
            [garbled, CountingProvider("subject", "up", {"a": 1})],
        )
        with caplog.at_level(logging.WARNING, logger="verdict"):
            assert await composite.get_attributes("alice") == {"a": 1}
        assert "Ignoring attributes from garbled: expected a mapping, got list" in caplog.text

    def test_add_wrong_category(self) -> None:
        """Adding a child of another category raises."""
        composite = CompositeAttributeProvider("subject", "all-users")
        with pytest.raises(AttributeResolutionError):
            composite.add_provider(CountingProvider("environment", "clock", {}))

    def test_add_and_remove(self) -> None:
        """Children can be added and removed by name."""
        composite = CompositeAttributeProvider("subject", "all-users")
        composite.add_provider(CountingProvider("subject", "a", {}))
        composite.remove_provider("a")
        assert composite.providers == []
