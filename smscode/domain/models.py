from __future__ import annotations

import json
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class VerificationCode:
	phone: str
	code: str
	expires_at: float

	@classmethod
	def issue(cls, phone: str, code: str, *, now: float, ttl_seconds: int) -> "VerificationCode":
		return cls(phone=phone, code=code, expires_at=now + ttl_seconds)

	def to_payload(self) -> str:
		return json.dumps(asdict(self), separators=(",", ":"))

	@classmethod
	def from_payload(cls, data: str | bytes | None) -> "VerificationCode | None":
		if not data:
			return None
		if isinstance(data, bytes):
			data = data.decode("utf-8")
		try:
			parsed = json.loads(data)
			return cls(
				phone=str(parsed["phone"]),
				code=str(parsed["code"]),
				expires_at=float(parsed["expires_at"]),
			)
		except (json.JSONDecodeError, KeyError, TypeError, ValueError):
			return None


@dataclass(frozen=True)
class ResendMarker:
	phone: str
	sent_at: int

	def to_payload(self) -> str:
		return str(self.sent_at)
