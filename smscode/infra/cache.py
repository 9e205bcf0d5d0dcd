"""Ephemeral key-value stores with per-key TTL."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from redis.exceptions import RedisError

from smscode.infra.redis import redis_client


class CacheError(Exception):
	"""Raised when the backing store rejects a read or write."""


class Cache(Protocol):
	"""Interface consumed by the code life-cycle service."""

	async def get(self, key: str) -> str | None:
		...

	async def set(self, key: str, value: str, ttl_seconds: int) -> None:
		...

	async def delete(self, key: str) -> None:
		...


class RedisCache:
	"""Cache backed by redis string keys with EX expiry."""

	def __init__(self, client: Any = None, *, prefix: str = "") -> None:
		self._client = client if client is not None else redis_client
		self._prefix = prefix

	def _key(self, key: str) -> str:
		return f"{self._prefix}{key}"

	async def get(self, key: str) -> str | None:
		try:
			value = await self._client.get(self._key(key))
		except RedisError as exc:
			raise CacheError(f"get failed for {key}") from exc
		if isinstance(value, bytes):
			value = value.decode("utf-8")
		return value

	async def set(self, key: str, value: str, ttl_seconds: int) -> None:
		try:
			await self._client.set(self._key(key), value, ex=max(1, int(ttl_seconds)))
		except RedisError as exc:
			raise CacheError(f"set failed for {key}") from exc

	async def delete(self, key: str) -> None:
		try:
			await self._client.delete(self._key(key))
		except RedisError as exc:
			raise CacheError(f"delete failed for {key}") from exc


@dataclass
class MemoryCache:
	"""In-process TTL cache for single-worker deployments and tests."""

	clock: Callable[[], float] = time.monotonic
	_entries: dict[str, tuple[str, float]] = field(default_factory=dict)

	async def get(self, key: str) -> str | None:
		entry = self._entries.get(key)
		if entry is None:
			return None
		value, expires_at = entry
		if self.clock() >= expires_at:
			self._entries.pop(key, None)
			return None
		return value

	async def set(self, key: str, value: str, ttl_seconds: int) -> None:
		now = self.clock()
		self._prune(now)
		self._entries[key] = (value, now + ttl_seconds)

	def _prune(self, now: float) -> None:
		expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
		for key in expired:
			del self._entries[key]

	def size(self) -> int:
		return len(self._entries)

	async def delete(self, key: str) -> None:
		self._entries.pop(key, None)
