"""Tencent Cloud SMS sender signed with TC3-HMAC-SHA256."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from smscode.infra.http import HTTPRequestError, RequestClient
from smscode.providers.base import Clock, ProviderError, hmac_digest, sha256_hex

logger = logging.getLogger(__name__)

ENDPOINT = "https://sms.tencentcloudapi.com"
HOST = "sms.tencentcloudapi.com"
SERVICE = "sms"
ACTION = "SendSms"
VERSION = "2021-01-11"
ALGORITHM = "TC3-HMAC-SHA256"
CONTENT_TYPE = "application/json; charset=utf-8"
SIGNED_HEADERS = "content-type;host"


@dataclass(frozen=True)
class TencentCredentials:
	secret_id: str
	secret_key: str
	sdk_app_id: str
	sign_name: str
	template_id: str
	region: str = "ap-guangzhou"

	def __repr__(self) -> str:
		return f"TencentCredentials(secret_id={self.secret_id!r}, sdk_app_id={self.sdk_app_id!r})"


@dataclass(frozen=True)
class SignedRequest:
	body: bytes
	canonical_request: str
	string_to_sign: str
	credential_scope: str
	signature: str
	authorization: str
	headers: dict[str, str]


def build_body(credentials: TencentCredentials, phone: str, code: str) -> bytes:
	payload = {
		"PhoneNumberSet": [phone],
		"SmsSdkAppId": credentials.sdk_app_id,
		"TemplateId": credentials.template_id,
		"SignName": credentials.sign_name,
		"TemplateParamSet": [code],
	}
	return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def canonical_request(body: bytes) -> str:
	canonical_headers = f"content-type:{CONTENT_TYPE}\nhost:{HOST}\n"
	return "\n".join(
		[
			"POST",
			"/",
			"",
			canonical_headers,
			SIGNED_HEADERS,
			sha256_hex(body),
		]
	)


def signing_key(secret_key: str, date: str) -> bytes:
	secret_date = hmac_digest(("TC3" + secret_key).encode("utf-8"), date, hashlib.sha256)
	secret_service = hmac_digest(secret_date, SERVICE, hashlib.sha256)
	return hmac_digest(secret_service, "tc3_request", hashlib.sha256)


def sign(credentials: TencentCredentials, body: bytes, timestamp: int) -> SignedRequest:
	"""Build the TC3 signature and request headers for a fixed body and timestamp."""
	date = datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")
	scope = f"{date}/{SERVICE}/tc3_request"
	canonical = canonical_request(body)
	string_to_sign = "\n".join([ALGORITHM, str(timestamp), scope, sha256_hex(canonical)])
	signature = hmac_digest(signing_key(credentials.secret_key, date), string_to_sign, hashlib.sha256).hex()
	authorization = (
		f"{ALGORITHM} Credential={credentials.secret_id}/{scope}, "
		f"SignedHeaders={SIGNED_HEADERS}, Signature={signature}"
	)
	headers = {
		"Content-Type": CONTENT_TYPE,
		"Host": HOST,
		"X-TC-Action": ACTION,
		"X-TC-Version": VERSION,
		"X-TC-Timestamp": str(timestamp),
		"Authorization": authorization,
	}
	if credentials.region:
		headers["X-TC-Region"] = credentials.region
	return SignedRequest(
		body=body,
		canonical_request=canonical,
		string_to_sign=string_to_sign,
		credential_scope=scope,
		signature=signature,
		authorization=authorization,
		headers=headers,
	)


@dataclass
class TencentSMSProvider:
	"""Sends codes through the Tencent Cloud SendSms API."""

	credentials: TencentCredentials
	http: RequestClient
	clock: Clock = time.time
	log: logging.Logger = field(default=logger)
	endpoint: str = ENDPOINT
	name: str = "tencent"

	async def send(self, phone: str, code: str) -> None:
		try:
			body = build_body(self.credentials, phone, code)
		except (TypeError, ValueError) as exc:
			raise ProviderError(self.name, "failed to encode request body") from exc

		signed = sign(self.credentials, body, int(self.clock()))
		try:
			response = await self.http.request(
				"POST",
				self.endpoint,
				content=signed.body,
				headers=signed.headers,
				expected_status=200,
				provider=self.name,
			)
		except HTTPRequestError as exc:
			raise ProviderError(self.name, "request failed") from exc

		try:
			result = response.json()
		except ValueError as exc:
			raise ProviderError(self.name, "failed to parse response") from exc

		envelope = result.get("Response") if isinstance(result, dict) else None
		if not isinstance(envelope, dict):
			envelope = {}

		# any non-null Error marks the send as failed, whatever its shape
		error = envelope.get("Error")
		if error is not None:
			details: dict = error if isinstance(error, dict) else {}
			self.log.warning(
				"tencent sms rejected",
				extra={
					"error_code": details.get("Code"),
					"request_id": envelope.get("RequestId"),
				},
			)
			raise ProviderError(self.name, f"send failed: {details.get('Message') or 'unrecognised error'}")

		self.log.debug(
			"tencent sms accepted",
			extra={"request_id": envelope.get("RequestId"), "statuses": envelope.get("SendStatusSet")},
		)

	async def aclose(self) -> None:
		await self.http.aclose()
