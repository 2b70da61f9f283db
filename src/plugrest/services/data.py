"""DataService: publish, read and delete channel data."""

from __future__ import annotations

from typing import Any

from plugrest.services.base import BaseService, compact
from plugrest.services.result import ServiceResult


class DataService(BaseService):
    """Channel data operations on behalf of the authenticated device."""

    def publish(
        self,
        channel: str,
        data: Any,
        *,
        at: Any = None,
        ttl: Any = None,
        expire_at: Any = None,
        entry_id: str | None = None,
    ) -> ServiceResult:
        """Publish a single entry on *channel*."""
        entry = {
            "channel": channel,
            "data": data,
            **compact(at=at, ttl=ttl, expire_at=expire_at, id=entry_id),
        }
        return self.publish_many([entry])

    def publish_many(self, entries: list[dict[str, Any]]) -> ServiceResult:
        return self._run(
            "publish_data",
            lambda: self._client.publish_data({"entries": entries}),
        )

    def retrieve(self, channel_mask: str, **filters: Any) -> ServiceResult:
        """Read data from the channels matching *channel_mask*.

        *filters* are ``of``, ``before``, ``after``, ``at``, ``offset`` and
        ``limit``; None values are dropped.
        """
        params = {"channel_mask": channel_mask, **compact(**filters)}
        return self._run("retrieve_data", lambda: self._client.retrieve_data(params))

    def remove(self, channel_mask: str | None = None, **selectors: Any) -> ServiceResult:
        """Delete entries matching *selectors*; every channel when no mask is given."""
        params = compact(channel_mask=channel_mask, **selectors)
        warnings = [] if channel_mask else ["no channel mask given, removing from every channel"]
        return self._run(
            "remove_data", lambda: self._client.remove_data(params), warnings=warnings
        )

    def channels(self, channel_mask: str, **filters: Any) -> ServiceResult:
        params = {"channel_mask": channel_mask, **compact(**filters)}
        return self._run("get_channels", lambda: self._client.get_channels(params))
