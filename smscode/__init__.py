"""One-time SMS verification codes with pluggable cloud delivery backends."""

__version__ = "0.1.0"
