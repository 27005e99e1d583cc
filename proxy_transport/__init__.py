"""Proxy-aware transport configuration for gRPC channels and httpx clients."""

from proxy_transport.credentials import CredentialsProvider
from proxy_transport.errors import InvalidConfigurationError, ProxyTransportError
from proxy_transport.grpc_channel import (
    ChannelBuilder,
    ChannelConfigurator,
    ProxyDetector,
    create_grpc_channel_configurator,
)
from proxy_transport.http_transport import (
    HttpClientBuilder,
    HttpTransportFactory,
    ProxiedHttpTransport,
    ProxyHttpTransportFactory,
    create_http_transport_factory,
)
from proxy_transport.types import (
    AuthScope,
    ProxiedSocketAddress,
    ProxyCredentials,
    SocketAddress,
    resolve_proxy_endpoint,
)
from proxy_transport.validation import check_proxy_params_validity

__all__ = [
    "AuthScope",
    "ChannelBuilder",
    "ChannelConfigurator",
    "CredentialsProvider",
    "HttpClientBuilder",
    "HttpTransportFactory",
    "InvalidConfigurationError",
    "ProxiedHttpTransport",
    "ProxiedSocketAddress",
    "ProxyCredentials",
    "ProxyDetector",
    "ProxyHttpTransportFactory",
    "ProxyTransportError",
    "SocketAddress",
    "check_proxy_params_validity",
    "create_grpc_channel_configurator",
    "create_http_transport_factory",
    "resolve_proxy_endpoint",
]
