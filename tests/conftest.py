import logging

import pytest
from fakeredis import FakeServer
from fakeredis.aioredis import FakeRedis

from smscode.infra.redis import redis_client, set_redis_client


@pytest.fixture(autouse=True)
def fake_redis():
	original = redis_client.client
	client = FakeRedis(server=FakeServer(), decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)


@pytest.fixture
def capture_logs(caplog):
	caplog.set_level(logging.DEBUG, logger="smscode")
	return caplog


class RecordingProvider:
	"""Provider double that records deliveries and can be told to fail."""

	name = "recording"

	def __init__(self, error: Exception | None = None) -> None:
		self.sent: list[tuple[str, str]] = []
		self.error = error
		self.closed = False

	async def send(self, phone: str, code: str) -> None:
		if self.error is not None:
			raise self.error
		self.sent.append((phone, code))

	async def aclose(self) -> None:
		self.closed = True


@pytest.fixture
def recording_provider():
	return RecordingProvider()


@pytest.fixture
def failing_provider():
	def _make(error: Exception) -> RecordingProvider:
		return RecordingProvider(error)

	return _make
