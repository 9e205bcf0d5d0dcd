"""Policy constants, phone validation, and the error taxonomy for SMS code flows."""

from __future__ import annotations

import asyncio
import re

CODE_LENGTH = 6
CODE_SPACE = 10 ** CODE_LENGTH
SMS_CODE_TTL_SECONDS = 5 * 60
SMS_RESEND_INTERVAL_SECONDS = 60

SMS_CODE_KEY_TEMPLATE = "sms:code:{phone}"
SMS_SENT_KEY_TEMPLATE = "sms:sent:{phone}"

# China mainland mobile numbering: 1, then 3-9, then nine digits
PHONE_CN_MOBILE_REGEX = re.compile(r"^1[3-9]\d{9}$")
_NON_DIGIT = re.compile(r"\D")


class SMSCodeError(ValueError):
	"""Base for caller-facing failures. ``reason`` is stable, ``message`` is for humans."""

	reason = "sms_error"
	message = "SMS verification failed"

	def __init__(self, message: str | None = None, *, reason: str | None = None):
		if reason is not None:
			self.reason = reason
		if message is not None:
			self.message = message
		super().__init__(self.reason)


class ValidationError(SMSCodeError):
	"""Raised when the phone number is not a valid mobile number."""

	reason = "phone_invalid"
	message = "Invalid mobile phone number"


class ThrottledError(SMSCodeError):
	"""Raised when a code was sent to the same phone within the resend interval."""

	reason = "sms_throttled"
	message = "Verification code requested too frequently, please try again later"


class DeliveryError(SMSCodeError):
	"""Raised when the code could not be handed to the delivery backend."""

	reason = "sms_delivery_failed"
	message = "Failed to send verification code"


class DeliveryCancelled(DeliveryError, asyncio.CancelledError):
	"""Delivery aborted because the caller's task was cancelled.

	Subclasses ``asyncio.CancelledError`` so the cancellation keeps unwinding the task.
	"""

	reason = "sms_delivery_cancelled"
	message = "Sending the verification code was cancelled"


class CodeStorageError(SMSCodeError):
	"""Raised when the code could not be written to or consumed from the cache."""

	reason = "sms_code_store_failed"
	message = "Failed to save verification code"


class NotFoundOrExpired(SMSCodeError):
	"""Raised when no live code exists for the phone."""

	reason = "sms_code_expired"
	message = "Verification code has expired or does not exist"


class Mismatch(SMSCodeError):
	"""Raised when the submitted code differs from the stored one."""

	reason = "sms_code_incorrect"
	message = "Incorrect verification code"


class ConfigIncomplete(Exception):
	"""Raised inside the provider factory when required credentials are missing."""

	def __init__(self, provider: str, missing: list[str]):
		super().__init__(f"{provider} SMS config incomplete: missing {', '.join(missing)}")
		self.provider = provider
		self.missing = missing


def normalise_phone(raw: str) -> str:
	"""Strip every non-digit character."""
	return _NON_DIGIT.sub("", raw or "")


def validate_phone(phone: str) -> bool:
	if not phone:
		return False
	return PHONE_CN_MOBILE_REGEX.fullmatch(phone) is not None


def guard_phone_number(phone: str) -> None:
	if not validate_phone(phone):
		raise ValidationError()


def code_key(phone: str) -> str:
	return SMS_CODE_KEY_TEMPLATE.format(phone=phone)


def sent_key(phone: str) -> str:
	return SMS_SENT_KEY_TEMPLATE.format(phone=phone)
