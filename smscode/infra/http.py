"""Outbound HTTP client shared by the SMS backends."""

from __future__ import annotations

import logging
import time
from typing import Mapping, Optional

import httpx

from smscode.obs import metrics as obs_metrics

log = logging.getLogger(__name__)


class HTTPRequestError(Exception):
	"""Raised on transport failure or when the response status is not the expected one."""

	def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None):
		super().__init__(message)
		self.status_code = status_code
		self.body = body


class RequestClient:
	"""Thin wrapper over httpx.AsyncClient that asserts the response status.

	Cancellation of the awaiting task is not intercepted: the in-flight request is
	aborted by httpx and ``asyncio.CancelledError`` reaches the caller.
	"""

	def __init__(
		self,
		client: Optional[httpx.AsyncClient] = None,
		*,
		timeout: float = 10.0,
		logger: Optional[logging.Logger] = None,
	) -> None:
		self._owns_client = client is None
		self._client = client or httpx.AsyncClient(timeout=timeout)
		self._timeout = timeout
		self._logger = logger or log

	async def request(
		self,
		method: str,
		url: str,
		*,
		content: bytes | None = None,
		headers: Mapping[str, str] | None = None,
		expected_status: int | None = 200,
		provider: str = "unknown",
	) -> httpx.Response:
		started = time.perf_counter()
		try:
			response = await self._client.request(
				method,
				url,
				content=content,
				headers=dict(headers or {}),
				timeout=self._timeout,
			)
		except httpx.HTTPError as exc:
			self._logger.warning(
				"outbound request failed",
				extra={"provider": provider, "method": method, "error": type(exc).__name__},
			)
			raise HTTPRequestError(f"{method} {_host(url)} failed: {exc}") from exc
		finally:
			obs_metrics.observe_provider_request(provider, time.perf_counter() - started)

		self._logger.debug(
			"outbound request completed",
			extra={"provider": provider, "method": method, "status": response.status_code},
		)
		if expected_status is not None and response.status_code != expected_status:
			raise HTTPRequestError(
				f"{method} {_host(url)} returned {response.status_code}, expected {expected_status}",
				status_code=response.status_code,
				body=response.text,
			)
		return response

	@property
	def is_closed(self) -> bool:
		return self._client.is_closed

	async def aclose(self) -> None:
		if self._owns_client:
			await self._client.aclose()


def _host(url: str) -> str:
	return httpx.URL(url).host
