"""Numeric one-time code generation."""

from __future__ import annotations

import random

from smscode.domain.policy import CODE_LENGTH, CODE_SPACE

_RNG = random.SystemRandom()


def generate_code(rng: random.Random | None = None) -> str:
	"""Generate a zero-padded 6-digit code, uniform over 000000-999999."""
	source = rng or _RNG
	return f"{source.randrange(CODE_SPACE):0{CODE_LENGTH}d}"
