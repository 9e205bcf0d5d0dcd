"""Aliyun Dysmsapi sender signed with the HMAC-SHA1 query-string scheme."""

from __future__ import annotations

import base64
import hashlib
import itertools
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Mapping
from urllib.parse import quote

from smscode.infra.http import HTTPRequestError, RequestClient
from smscode.providers.base import Clock, ProviderError, hmac_digest

logger = logging.getLogger(__name__)

ENDPOINT = "https://dysmsapi.aliyuncs.com"
ACTION = "SendSms"
VERSION = "2017-05-25"
SUCCESS_CODE = "OK"

_ERROR_HINTS = {
	"isp.RAM_PERMISSION_DENY": "RAM permission denied",
	"isv.OUT_OF_SERVICE": "account suspended",
	"isv.PRODUCT_UN_SUBSCRIPT": "SMS product not activated",
	"isv.ACCOUNT_NOT_EXISTS": "account does not exist",
	"isv.ACCOUNT_ABNORMAL": "account abnormal",
	"isv.SMS_TEMPLATE_ILLEGAL": "template not approved",
	"isv.SMS_SIGNATURE_ILLEGAL": "sign name not approved",
	"isv.INVALID_PARAMETERS": "invalid parameters",
	"isv.MOBILE_NUMBER_ILLEGAL": "invalid mobile number",
	"isv.TEMPLATE_MISSING_PARAMETERS": "template parameter missing",
	"isv.BUSINESS_LIMIT_CONTROL": "backend rate limit reached",
	"isv.INVALID_JSON_PARAM": "template parameter is not valid JSON",
	"isv.AMOUNT_NOT_ENOUGH": "insufficient balance",
}


@dataclass(frozen=True)
class AliyunCredentials:
	access_key_id: str
	access_key_secret: str
	sign_name: str
	template_code: str
	region_id: str = "cn-hangzhou"

	def __repr__(self) -> str:
		return f"AliyunCredentials(access_key_id={self.access_key_id!r}, sign_name={self.sign_name!r})"


def percent_encode(value: str) -> str:
	"""RFC 3986 encoding as Aliyun RPC signing requires it.

	Only ``A-Z a-z 0-9 - _ . ~`` pass through: space becomes ``%20``, ``*`` becomes
	``%2A`` and ``~`` stays literal.
	"""
	return quote(value, safe="~")


def canonical_query(params: Mapping[str, str]) -> str:
	return "&".join(f"{percent_encode(k)}={percent_encode(params[k])}" for k in sorted(params))


def string_to_sign(method: str, params: Mapping[str, str]) -> str:
	return f"{method.upper()}&{percent_encode('/')}&{percent_encode(canonical_query(params))}"


def sign(method: str, params: Mapping[str, str], access_key_secret: str) -> str:
	digest = hmac_digest(f"{access_key_secret}&".encode("utf-8"), string_to_sign(method, params), hashlib.sha1)
	return base64.b64encode(digest).decode("ascii")


_NONCE_SEQ = itertools.count()


def _default_nonce() -> str:
	return f"{time.time_ns()}{next(_NONCE_SEQ) % 1000:03d}"


@dataclass
class AliyunSMSProvider:
	"""Sends codes through the Aliyun SendSms RPC API."""

	credentials: AliyunCredentials
	http: RequestClient
	clock: Clock = time.time
	nonce: Callable[[], str] = _default_nonce
	log: logging.Logger = field(default=logger)
	endpoint: str = ENDPOINT
	name: str = "aliyun"

	def build_params(self, phone: str, code: str) -> dict[str, str]:
		timestamp = datetime.fromtimestamp(self.clock(), tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
		return {
			"SignatureMethod": "HMAC-SHA1",
			"SignatureNonce": self.nonce(),
			"AccessKeyId": self.credentials.access_key_id,
			"SignatureVersion": "1.0",
			"Timestamp": timestamp,
			"Format": "JSON",
			"Action": ACTION,
			"Version": VERSION,
			"RegionId": self.credentials.region_id,
			"PhoneNumbers": phone,
			"SignName": self.credentials.sign_name,
			"TemplateCode": self.credentials.template_code,
			"TemplateParam": json.dumps({"code": code}, separators=(",", ":")),
		}

	def signed_url(self, phone: str, code: str) -> str:
		params = self.build_params(phone, code)
		signature = sign("GET", params, self.credentials.access_key_secret)
		return f"{self.endpoint}/?Signature={percent_encode(signature)}&{canonical_query(params)}"

	async def send(self, phone: str, code: str) -> None:
		url = self.signed_url(phone, code)
		try:
			response = await self.http.request("GET", url, expected_status=200, provider=self.name)
		except HTTPRequestError as exc:
			raise ProviderError(self.name, "request failed") from exc

		try:
			result = response.json()
		except ValueError as exc:
			raise ProviderError(self.name, "failed to parse response") from exc
		if not isinstance(result, dict):
			raise ProviderError(self.name, "unexpected response shape")

		if result.get("Code") != SUCCESS_CODE:
			error_code = result.get("Code")
			self.log.warning(
				"aliyun sms rejected",
				extra={
					"error_code": error_code,
					"hint": _ERROR_HINTS.get(str(error_code), "unknown"),
					"request_id": result.get("RequestId"),
				},
			)
			raise ProviderError(self.name, f"send failed: {result.get('Message')}")

		self.log.debug("aliyun sms accepted", extra={"biz_id": result.get("BizId")})

	async def aclose(self) -> None:
		await self.http.aclose()
