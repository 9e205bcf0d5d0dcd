"""Observability package bootstrap."""

from __future__ import annotations

from smscode.obs import logging as obs_logging
from smscode.settings import settings

_initialised = False


def init() -> None:
	global _initialised
	if _initialised:
		return
	obs_logging.configure_logging()
	obs_logging.get_logger().info(
		"observability configured",
		extra={"log_level": settings.obs_log_level, "provider": settings.sms_provider},
	)
	_initialised = True
