"""
Environment attribute provider.

Supplies time-of-request attributes on every call, plus attributes derived
from the optional AttributeContext:

    currentTime       datetime (UTC)
    currentDate       "YYYY-MM-DD" (UTC)
    currentTimestamp  epoch milliseconds
    dayOfWeek         0 = Sunday ... 6 = Saturday, local time
    hourOfDay         0-23, local time
    ipAddress         request ip, else x-forwarded-for (first hop),
                      x-real-ip, cf-connecting-ip
    userAgent, origin, referer
    sessionId, sessionAge (milliseconds)

Static attributes are applied first; context attributes are merged last
and win over everything.
"""

import logging
import time
from datetime import UTC, datetime
from typing import Any

from verdict.providers.base import AttributeContext, AttributeProvider, RequestInfo
from verdict.schema import AttributeCategory

DYNAMIC_ATTRIBUTES = (
    "currentTime",
    "currentDate",
    "currentTimestamp",
    "dayOfWeek",
    "hourOfDay",
    "ipAddress",
    "userAgent",
    "origin",
    "referer",
    "sessionId",
    "sessionAge",
)


def _first(value: str | list[str] | None) -> str | None:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def extract_ip_address(request: RequestInfo | None) -> str | None:
    """Find the client address in request details, proxies' headers included."""
    if request is None:
        return None
    if request.ip:
        return request.ip

    headers = request.headers or {}

    forwarded_for = _first(headers.get("x-forwarded-for"))
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    for header in ("x-real-ip", "cf-connecting-ip"):
        value = _first(headers.get(header))
        if value:
            return value

    return None


class EnvironmentAttributeProvider(AttributeProvider):
    """Contextual attributes: time, client address, headers and session."""

    def __init__(
        self,
        name: str = "default-environment",
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(AttributeCategory.ENVIRONMENT, name, logger)
        self._static: dict[str, Any] = {}

    async def get_attributes(
        self,
        entity_id: str,
        context: AttributeContext | None = None,
    ) -> dict[str, Any]:
        now = datetime.now(UTC)
        local = now.astimezone()
        now_ms = int(time.time() * 1000)

        attributes: dict[str, Any] = dict(self._static)
        attributes.update({
            "currentTime": now,
            "currentDate": now.date().isoformat(),
            "currentTimestamp": now_ms,
            "dayOfWeek": (local.weekday() + 1) % 7,
            "hourOfDay": local.hour,
        })

        if context is None:
            return attributes

        if context.request is not None:
            ip_address = extract_ip_address(context.request)
            if ip_address:
                attributes["ipAddress"] = ip_address

            headers = context.request.headers or {}
            for header, attribute in (
                ("user-agent", "userAgent"),
                ("origin", "origin"),
                ("referer", "referer"),
            ):
                value = _first(headers.get(header))
                if value:
                    attributes[attribute] = value

        if context.session is not None:
            if context.session.id:
                attributes["sessionId"] = context.session.id
            created_at = context.session.created_at
            attributes["sessionAge"] = now_ms - created_at if created_at else 0

        attributes.update(context.attributes)
        return attributes

    def supports_attribute(self, attribute_id: str) -> bool:
        return attribute_id in DYNAMIC_ATTRIBUTES or attribute_id in self._static

    def add_static_attribute(self, name: str, value: Any) -> None:
        self._static[name] = value

    def remove_static_attribute(self, name: str) -> None:
        self._static.pop(name, None)
