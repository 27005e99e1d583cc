"""gRPC channel builder and the proxy configurator that plugs into it.

``ChannelBuilder`` is the transform point handed to channel configurators:
a configurator receives a builder, customises it, and returns it. The proxy
configurator installs a proxy detector, which the builder consults for its
target every time a channel is built. A proxied target is rendered as the
``grpc.http_proxy`` channel argument, so grpc tunnels the connection through
the proxy with HTTP CONNECT and presents the credentials on each attempt.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional
from urllib.parse import ParseResult, SplitResult

import grpc

from proxy_transport.types import ProxiedSocketAddress, SocketAddress, resolve_proxy_endpoint
from proxy_transport.validation import check_proxy_params_validity

logger = logging.getLogger(__name__)

ProxyDetector = Callable[[SocketAddress], Optional[ProxiedSocketAddress]]


class ChannelBuilder:
    """Collects channel settings and produces a ``grpc.Channel``."""

    def __init__(self, target: str) -> None:
        self._target = target
        self._options: dict[str, Any] = {}
        self._channel_credentials: grpc.ChannelCredentials | None = None
        self._proxy_detector: ProxyDetector | None = None

    @classmethod
    def for_target(cls, target: str) -> ChannelBuilder:
        return cls(target)

    @classmethod
    def for_address(cls, host: str, port: int) -> ChannelBuilder:
        return cls(str(SocketAddress(host=host, port=port)))

    @property
    def target(self) -> str:
        return self._target

    def option(self, key: str, value: Any) -> ChannelBuilder:
        self._options[key] = value
        return self

    def use_transport_security(self, credentials: grpc.ChannelCredentials) -> ChannelBuilder:
        self._channel_credentials = credentials
        return self

    def use_plaintext(self) -> ChannelBuilder:
        self._channel_credentials = None
        return self

    def proxy_detector(self, detector: ProxyDetector | None) -> ChannelBuilder:
        """Install the hook asked which proxy, if any, to use for the target."""
        self._proxy_detector = detector
        return self

    def detect_proxy(self) -> ProxiedSocketAddress | None:
        if self._proxy_detector is None:
            return None
        return self._proxy_detector(SocketAddress.parse(self._target))

    def channel_options(self) -> list[tuple[str, Any]]:
        """Channel arguments for the next channel, proxy settings included."""
        options = dict(self._options)
        proxied = self.detect_proxy()
        if proxied is not None:
            options["grpc.enable_http_proxy"] = 1
            options["grpc.http_proxy"] = proxied.proxy_uri()
        return list(options.items())

    def build(self) -> grpc.Channel:
        options = self.channel_options()
        logger.debug("Building gRPC channel for %s", self._target, extra={"target": self._target})
        if self._channel_credentials is not None:
            return grpc.secure_channel(self._target, self._channel_credentials, options=options)
        return grpc.insecure_channel(self._target, options=options)


ChannelConfigurator = Callable[[ChannelBuilder], ChannelBuilder]


def create_grpc_channel_configurator(
    proxy_address: str | ParseResult | SplitResult | None,
    proxy_username: str | None = None,
    proxy_password: str | None = None,
) -> ChannelConfigurator | None:
    """Build a configurator that routes gRPC channels through a forward proxy.

    Returns ``None`` when no proxy address is given; callers must then skip
    the configurator entirely rather than apply it.

    Raises
    ------
    InvalidConfigurationError
        If only one of username/password is given, or the address has no
        usable host/port.
    """
    if proxy_address is None:
        logger.debug("No proxy address configured, gRPC channels connect directly")
        return None
    check_proxy_params_validity(proxy_username, proxy_password)

    proxy_socket_address = resolve_proxy_endpoint(proxy_address)
    with_credentials = proxy_username is not None and proxy_password is not None

    def proxy_for(target_address: SocketAddress) -> ProxiedSocketAddress:
        if with_credentials:
            return ProxiedSocketAddress(
                target_address=target_address,
                proxy_address=proxy_socket_address,
                username=proxy_username,
                password=proxy_password,
            )
        return ProxiedSocketAddress(
            target_address=target_address,
            proxy_address=proxy_socket_address,
        )

    def configure(builder: ChannelBuilder) -> ChannelBuilder:
        return builder.proxy_detector(proxy_for)

    logger.info(
        "gRPC channels will use proxy %s (authenticated: %s)",
        proxy_socket_address,
        with_credentials,
        extra={"proxy_host": proxy_socket_address.host, "proxy_port": proxy_socket_address.port},
    )
    return configure
