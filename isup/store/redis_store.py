"""Redis-backed score store.

Layout::

    <key_prefix><url>   -> JSON-encoded Score
    <sorted_set_name>   -> sorted set, member = url, score = Score.score

``set`` sends both writes in one non-transactional pipeline. A partial
failure can leave the value and the ranking out of step; readers may see
either one updated without the other until the next successful write.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Union

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from isup.constants import (
    DEFAULT_REDIS_KEY_PREFIX,
    DEFAULT_REDIS_SORTED_SET,
    DEFAULT_REDIS_URL,
)
from isup.errors import StoreError
from isup.score import Score
from isup.store.base import Store, check_score

logger = logging.getLogger(__name__)

_BACKEND_ERRORS = (RedisError, OSError)


def _as_text(value: Union[str, bytes]) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisStore(Store):
    """Score store on a Redis server.

    Parameters
    ----------
    client:
        A ``redis.asyncio.Redis`` client (or compatible object).
    key_prefix:
        Prefix for the per-URL value keys (default ``isup:``).
    sorted_set_name:
        Name of the ranking sorted set (default ``isup:scores``).

    ``best()`` is ``ZREVRANGE 0 0``: ties go to the member that sorts last
    lexicographically, which is how Redis orders equal scores.
    """

    name = "redis"

    def __init__(
        self,
        client: Any,
        *,
        key_prefix: str = DEFAULT_REDIS_KEY_PREFIX,
        sorted_set_name: str = DEFAULT_REDIS_SORTED_SET,
    ) -> None:
        self._client = client
        self._key_prefix = key_prefix
        self._sorted_set_name = sorted_set_name

    @classmethod
    def from_url(
        cls,
        url: str = DEFAULT_REDIS_URL,
        *,
        key_prefix: str = DEFAULT_REDIS_KEY_PREFIX,
        sorted_set_name: str = DEFAULT_REDIS_SORTED_SET,
    ) -> "RedisStore":
        """Create a store with a pooled client for *url*."""
        client = aioredis.from_url(url, decode_responses=True)
        logger.debug("Redis store configured (prefix=%s, set=%s)", key_prefix, sorted_set_name)
        return cls(client, key_prefix=key_prefix, sorted_set_name=sorted_set_name)

    @property
    def key_prefix(self) -> str:
        return self._key_prefix

    @property
    def sorted_set_name(self) -> str:
        return self._sorted_set_name

    def _value_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def set(self, key: str, score: Score) -> None:
        check_score(key, score, self.name)
        try:
            payload = json.dumps(score.to_dict())
        except (TypeError, ValueError) as exc:
            raise StoreError(f"cannot serialise score for '{key}'", self.name, exc) from exc

        pipe = self._client.pipeline(transaction=False)
        pipe.set(self._value_key(key), payload)
        pipe.zadd(self._sorted_set_name, {key: score.score})
        try:
            await pipe.execute()
        except _BACKEND_ERRORS as exc:
            raise StoreError(f"write failed for '{key}': {exc}", self.name, exc) from exc

    async def get(self, key: str) -> Optional[Score]:
        try:
            raw = await self._client.get(self._value_key(key))
        except _BACKEND_ERRORS as exc:
            raise StoreError(f"read failed for '{key}': {exc}", self.name, exc) from exc
        if raw is None:
            return None
        try:
            return Score.from_dict(json.loads(_as_text(raw)))
        except (ValueError, TypeError, AttributeError) as exc:
            raise StoreError(f"corrupt score stored for '{key}'", self.name, exc) from exc

    async def best(self) -> Optional[str]:
        try:
            top = await self._client.zrevrange(self._sorted_set_name, 0, 0)
        except _BACKEND_ERRORS as exc:
            raise StoreError(f"ranking query failed: {exc}", self.name, exc) from exc
        if not top:
            return None
        return _as_text(top[0])

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except _BACKEND_ERRORS as exc:
            logger.warning("Error closing Redis connection: %s", exc)
