"""Configuration module — environment-driven proxy settings."""

from proxy_transport.config.settings import ProxySettings

__all__ = ["ProxySettings"]
