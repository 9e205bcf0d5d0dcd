"""Delivery backend contract shared by every SMS provider variant."""

from __future__ import annotations

import hashlib
import hmac
from typing import Callable, Protocol

Clock = Callable[[], float]


class ProviderError(Exception):
	"""Raised by a provider when a code could not be delivered.

	The underlying cause is chained (``raise ... from exc``) for logging only.
	"""

	def __init__(self, provider: str, message: str):
		super().__init__(f"{provider}: {message}")
		self.provider = provider
		self.detail = message


class SMSProvider(Protocol):
	"""Sends one verification code to one phone number."""

	name: str

	async def send(self, phone: str, code: str) -> None:
		...

	async def aclose(self) -> None:
		"""Release the outbound HTTP client, if the provider owns one."""
		...


def sha256_hex(data: bytes | str) -> str:
	if isinstance(data, str):
		data = data.encode("utf-8")
	return hashlib.sha256(data).hexdigest()


def hmac_digest(key: bytes, message: str, digestmod) -> bytes:
	return hmac.new(key, message.encode("utf-8"), digestmod).digest()
