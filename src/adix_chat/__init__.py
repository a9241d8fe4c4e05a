"""Adix chat gateway: rate-limited forwarding of chat turns to LLM providers."""

__version__ = "0.1.0"
