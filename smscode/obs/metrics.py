"""Central registry for Prometheus metrics used by the SMS code service."""

from __future__ import annotations

from prometheus_client import Counter, Histogram


SMS_SEND = Counter(
	"smscode_sms_send_total",
	"Verification code send attempts",
	["provider", "result"],
)

SMS_VERIFY = Counter(
	"smscode_sms_verify_total",
	"Verification code checks",
	["result"],
)

PROVIDER_FALLBACK = Counter(
	"smscode_provider_fallback_total",
	"Provider selections that fell back to the no-op sender",
	["provider", "reason"],
)

PROVIDER_REQUEST_LATENCY = Histogram(
	"smscode_provider_request_seconds",
	"Outbound SMS backend request latency in seconds",
	["provider"],
	buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0),
)


def inc_sms_send(provider: str, result: str) -> None:
	SMS_SEND.labels(provider=provider, result=result).inc()


def inc_sms_verify(result: str) -> None:
	SMS_VERIFY.labels(result=result).inc()


def inc_provider_fallback(provider: str, reason: str) -> None:
	PROVIDER_FALLBACK.labels(provider=provider, reason=reason).inc()


def observe_provider_request(provider: str, elapsed_seconds: float) -> None:
	PROVIDER_REQUEST_LATENCY.labels(provider=provider).observe(elapsed_seconds)
