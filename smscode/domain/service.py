"""Verification-code life-cycle: issue, throttle, store, and single-use verify."""

from __future__ import annotations

import asyncio
import hmac
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from smscode.domain import codes, policy
from smscode.domain.models import ResendMarker, VerificationCode
from smscode.infra.cache import Cache, CacheError, RedisCache
from smscode.infra.http import RequestClient
from smscode.obs import metrics as obs_metrics
from smscode.obs.logging import mask_phone
from smscode.providers.base import SMSProvider
from smscode.providers.factory import select_provider
from smscode.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


@dataclass
class VerificationCodeService:
	"""Issues and checks one-time codes for phone numbers.

	The resend throttle is a check-then-write on the shared cache and is not
	linearizable: two concurrent sends for one phone may both pass the check.
	"""

	cache: Cache
	provider: SMSProvider
	code_ttl_seconds: int = policy.SMS_CODE_TTL_SECONDS
	resend_interval_seconds: int = policy.SMS_RESEND_INTERVAL_SECONDS
	rng: Optional[random.Random] = None
	clock: Callable[[], float] = time.time
	log: logging.Logger = field(default=logger)

	async def send_code(self, phone: str) -> None:
		"""Generate a code, deliver it, then store it with the resend marker.

		Raises ThrottledError, DeliveryError (DeliveryCancelled on cancellation) or CodeStorageError.
		"""
		provider_name = getattr(self.provider, "name", type(self.provider).__name__)
		try:
			marker = await self.cache.get(policy.sent_key(phone))
		except CacheError as exc:
			self.log.error("resend marker lookup failed for %s", mask_phone(phone), exc_info=True)
			raise policy.CodeStorageError() from exc
		if marker is not None:
			obs_metrics.inc_sms_send(provider_name, "throttled")
			raise policy.ThrottledError()

		code = codes.generate_code(self.rng)
		try:
			await self.provider.send(phone, code)
		except asyncio.CancelledError as exc:
			obs_metrics.inc_sms_send(provider_name, "cancelled")
			self.log.warning("SMS delivery to %s cancelled", mask_phone(phone))
			raise policy.DeliveryCancelled() from exc
		except Exception as exc:
			obs_metrics.inc_sms_send(provider_name, "error")
			self.log.warning(
				"Failed to send SMS code to %s: %s",
				mask_phone(phone),
				exc,
				exc_info=True,
				extra={"provider": provider_name},
			)
			raise policy.DeliveryError() from exc

		now = self.clock()
		record = VerificationCode.issue(phone, code, now=now, ttl_seconds=self.code_ttl_seconds)
		try:
			await self.cache.set(policy.code_key(phone), record.to_payload(), self.code_ttl_seconds)
		except CacheError as exc:
			self.log.error("Failed to store SMS code for %s", mask_phone(phone), exc_info=True)
			raise policy.CodeStorageError() from exc

		sent = ResendMarker(phone=phone, sent_at=int(now))
		try:
			await self.cache.set(policy.sent_key(phone), sent.to_payload(), self.resend_interval_seconds)
		except CacheError:
			# non-fatal: the code was already delivered
			self.log.warning("Failed to record SMS send time for %s", mask_phone(phone), exc_info=True)

		obs_metrics.inc_sms_send(provider_name, "ok")
		self.log.info("SMS code sent", extra={"provider": provider_name, "phone_masked": mask_phone(phone)})

	async def verify_code(self, phone: str, submitted: str) -> None:
		"""Consume the stored code when it matches.

		Raises NotFoundOrExpired, Mismatch (stored code kept) or CodeStorageError.
		"""
		try:
			raw = await self.cache.get(policy.code_key(phone))
		except CacheError as exc:
			self.log.error("SMS code lookup failed for %s", mask_phone(phone), exc_info=True)
			raise policy.CodeStorageError() from exc

		record = VerificationCode.from_payload(raw)
		if record is None:
			obs_metrics.inc_sms_verify("expired")
			raise policy.NotFoundOrExpired()

		if not hmac.compare_digest(record.code.encode("utf-8"), (submitted or "").strip().encode("utf-8")):
			obs_metrics.inc_sms_verify("mismatch")
			raise policy.Mismatch()

		try:
			await self.cache.delete(policy.code_key(phone))
		except CacheError as exc:
			# success implies the code is gone
			self.log.error("Failed to consume SMS code for %s", mask_phone(phone), exc_info=True)
			raise policy.CodeStorageError() from exc
		obs_metrics.inc_sms_verify("ok")

	async def aclose(self) -> None:
		"""Release the provider's outbound HTTP client."""
		await self.provider.aclose()

	async def __aenter__(self) -> "VerificationCodeService":
		return self

	async def __aexit__(self, *exc_info) -> None:
		await self.aclose()


def build_service(
	config: Optional[Settings] = None,
	*,
	cache: Optional[Cache] = None,
	http: Optional[RequestClient] = None,
) -> VerificationCodeService:
	"""Wire the configured provider and the redis-backed cache.

	Close the returned service with ``aclose()`` or use it as an async context
	manager so the provider's HTTP client is released.
	"""
	config = config or default_settings
	return VerificationCodeService(
		cache=cache if cache is not None else RedisCache(),
		provider=select_provider(config, http=http),
		code_ttl_seconds=config.sms_code_ttl_seconds,
		resend_interval_seconds=config.sms_resend_interval_seconds,
	)
