"""Score persistence backends.

Public API
----------
- :class:`Store`: Abstract store interface
- :class:`MemoryStore`: In-process store
- :class:`RedisStore`: Redis value keys plus a ranking sorted set
- :func:`create_store`: Build a store from validated configuration
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from isup.store.base import Store
from isup.store.memory import MemoryStore
from isup.store.redis_store import RedisStore

if TYPE_CHECKING:
    from isup.config.schema import StoreConfig


def create_store(config: Optional["StoreConfig"] = None) -> Store:
    """Instantiate the store selected by *config* (default: memory)."""
    if config is None or config.type == "memory":
        return MemoryStore()
    if config.type == "redis":
        return RedisStore.from_url(
            config.connection,
            key_prefix=config.key_prefix,
            sorted_set_name=config.sorted_set_name,
        )
    raise ValueError(f"Unknown store type: {config.type!r}")


__all__ = [
    "MemoryStore",
    "RedisStore",
    "Store",
    "create_store",
]
