"""Phone-number entry points used by the login and registration callers."""

from __future__ import annotations

from smscode.domain import policy
from smscode.domain.service import VerificationCodeService
from smscode.obs.logging import bind_context, reset_context


def _checked_phone(raw_phone: str) -> str:
	normalized = policy.normalise_phone(raw_phone)
	policy.guard_phone_number(normalized)
	return normalized


async def request_code(service: VerificationCodeService, raw_phone: str) -> str:
	"""Normalize and validate the number, send a code, and return the normalized number."""
	phone = _checked_phone(raw_phone)
	tokens = bind_context(phone=phone)
	try:
		await service.send_code(phone)
	finally:
		reset_context(tokens)
	return phone


async def verify_phone(service: VerificationCodeService, raw_phone: str, code: str) -> str:
	"""Normalize and validate the number, consume the code, and return the normalized number."""
	phone = _checked_phone(raw_phone)
	tokens = bind_context(phone=phone)
	try:
		await service.verify_code(phone, code)
	finally:
		reset_context(tokens)
	return phone
