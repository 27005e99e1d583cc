"""Error hierarchy for the proxy transport builders.

All proxy-transport errors extend ProxyTransportError. Builders raise these
synchronously at build time and never recover from them internally; callers
are expected to abort client construction.
"""

from __future__ import annotations


class ProxyTransportError(Exception):
    """Base error for all proxy-transport errors."""

    message: str = "Proxy transport error"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


class InvalidConfigurationError(ProxyTransportError):
    """Proxy settings that cannot produce a working transport."""

    message = "Invalid proxy configuration"
