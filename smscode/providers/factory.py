"""Selects and constructs the configured SMS provider."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from smscode.domain.policy import ConfigIncomplete
from smscode.infra.http import RequestClient
from smscode.obs import metrics as obs_metrics
from smscode.providers.aliyun import AliyunCredentials, AliyunSMSProvider
from smscode.providers.base import SMSProvider
from smscode.providers.noop import NoopSMSProvider
from smscode.providers.tencent import TencentCredentials, TencentSMSProvider
from smscode.settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)

_ALIYUN_FIELDS = (
	"sms_aliyun_access_key_id",
	"sms_aliyun_access_key_secret",
	"sms_aliyun_sign_name",
	"sms_aliyun_template_code",
)

_TENCENT_FIELDS = (
	"sms_tencent_secret_id",
	"sms_tencent_secret_key",
	"sms_tencent_sdk_app_id",
	"sms_tencent_sign_name",
	"sms_tencent_template_id",
)


def _require(provider: str, config: Settings, fields: tuple[str, ...]) -> dict[str, str]:
	values = {name: (getattr(config, name, None) or "").strip() for name in fields}
	missing = [name.upper() for name, value in values.items() if not value]
	if missing:
		raise ConfigIncomplete(provider, missing)
	return values


def _http_client(config: Settings, log: logging.Logger) -> RequestClient:
	return RequestClient(timeout=config.sms_http_timeout_seconds, logger=log)


def _build_aliyun(config: Settings, http: Optional[RequestClient], log: logging.Logger) -> SMSProvider:
	values = _require("aliyun", config, _ALIYUN_FIELDS)
	credentials = AliyunCredentials(
		access_key_id=values["sms_aliyun_access_key_id"],
		access_key_secret=values["sms_aliyun_access_key_secret"],
		sign_name=values["sms_aliyun_sign_name"],
		template_code=values["sms_aliyun_template_code"],
		region_id=config.sms_aliyun_region_id,
	)
	return AliyunSMSProvider(credentials=credentials, http=http or _http_client(config, log), log=log)


def _build_tencent(config: Settings, http: Optional[RequestClient], log: logging.Logger) -> SMSProvider:
	values = _require("tencent", config, _TENCENT_FIELDS)
	credentials = TencentCredentials(
		secret_id=values["sms_tencent_secret_id"],
		secret_key=values["sms_tencent_secret_key"],
		sdk_app_id=values["sms_tencent_sdk_app_id"],
		sign_name=values["sms_tencent_sign_name"],
		template_id=values["sms_tencent_template_id"],
		region=config.sms_tencent_region,
	)
	return TencentSMSProvider(credentials=credentials, http=http or _http_client(config, log), log=log)


_BUILDERS: dict[str, Callable[[Settings, Optional[RequestClient], logging.Logger], SMSProvider]] = {
	"aliyun": _build_aliyun,
	"tencent": _build_tencent,
}


def available_providers() -> list[str]:
	return sorted([*_BUILDERS, "noop"])


def select_provider(
	config: Optional[Settings] = None,
	*,
	http: Optional[RequestClient] = None,
	log: Optional[logging.Logger] = None,
) -> SMSProvider:
	"""Return the configured provider, or the no-op sender when it cannot be built.

	No network or I/O happens here; the HTTP client is only used on ``send``.
	"""
	config = config or default_settings
	log = log or logger
	name = (config.sms_provider or "noop").strip().lower()

	builder = _BUILDERS.get(name)
	if builder is None:
		if name not in ("noop", "mock"):
			log.warning("Unknown SMS provider %r, falling back to no-op sender", name)
			obs_metrics.inc_provider_fallback(name, "unknown")
		return NoopSMSProvider(log=log)

	try:
		return builder(config, http, log)
	except ConfigIncomplete as exc:
		log.warning(
			"%s SMS config incomplete, falling back to no-op sender",
			exc.provider,
			extra={"missing_fields": exc.missing},
		)
		obs_metrics.inc_provider_fallback(exc.provider, "config_incomplete")
		return NoopSMSProvider(log=log)
