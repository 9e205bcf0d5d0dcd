"""Sender used when no real delivery backend is configured."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class NoopSMSProvider:
	"""Logs the phone and code instead of transmitting; always succeeds."""

	log: logging.Logger = field(default=logger)
	name: str = "noop"

	async def send(self, phone: str, code: str) -> None:
		self.log.info("SMS code for %s: %s (no delivery backend configured)", phone, code)

	async def aclose(self) -> None:
		return None
