"""Proxy data models shared by the gRPC and HTTP builders."""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import ParseResult, SplitResult, quote, urlsplit

from proxy_transport.errors import InvalidConfigurationError

_DEFAULT_PORTS = {"http": 80, "https": 443}

# Prefixes grpc accepts in front of a "host:port" target
_GRPC_TARGET_PREFIXES = ("dns:", "ipv4:", "ipv6:")
_GRPC_DEFAULT_PORT = 443


@dataclass(frozen=True)
class SocketAddress:
    """A host/port pair. Immutable once derived."""

    host: str
    port: int

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    @classmethod
    def parse(cls, target: str, default_port: int = _GRPC_DEFAULT_PORT) -> SocketAddress:
        """Parse a ``host:port`` target, as handed to a gRPC channel.

        Bracketed IPv6 literals (``[::1]:50051``) and the ``dns:``/``ipv4:``/
        ``ipv6:`` name-resolver prefixes are understood, as is the
        ``dns://<authority>/host:port`` form naming a DNS server.
        """
        if target.startswith("dns://"):
            # Drop the DNS server authority, which may be empty
            target = target[len("dns://"):].partition("/")[2]

        for prefix in _GRPC_TARGET_PREFIXES:
            if target.startswith(prefix):
                target = target[len(prefix):]
                break

        if target.startswith("["):
            host, _, rest = target[1:].partition("]")
            port = rest[1:] if rest.startswith(":") else ""
        elif target.count(":") == 1:
            host, _, port = target.partition(":")
        else:
            host, port = target, ""

        if not host:
            raise InvalidConfigurationError(f"Target '{target}' has no host")
        try:
            return cls(host=host, port=int(port) if port else default_port)
        except ValueError as exc:
            raise InvalidConfigurationError(f"Target '{target}' has an invalid port") from exc


@dataclass(frozen=True)
class AuthScope:
    """Key of the scoped credential store: one exact proxy host/port pair."""

    host: str
    port: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "host", self.host.lower())


@dataclass(frozen=True)
class ProxyCredentials:
    """Basic-auth pair presented to the proxy."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ProxiedSocketAddress:
    """Pairs a real target address with the proxy used to reach it."""

    target_address: SocketAddress
    proxy_address: SocketAddress
    username: str | None = None
    password: str | None = field(default=None, repr=False)

    def proxy_uri(self) -> str:
        """Render the proxy as an ``http://`` URI, with userinfo if credentials are set."""
        if self.username is not None and self.password is not None:
            userinfo = f"{quote(self.username, safe='')}:{quote(self.password, safe='')}@"
            return f"http://{userinfo}{self.proxy_address}"
        return f"http://{self.proxy_address}"


def resolve_proxy_endpoint(proxy_address: str | ParseResult | SplitResult) -> SocketAddress:
    """Extract the proxy host and port from a URI.

    A bare ``host:port`` is read as an ``http://`` URI. The scheme is only used
    to pick a default port when the URI has none.
    """
    if isinstance(proxy_address, str):
        if "//" not in proxy_address:
            proxy_address = f"http://{proxy_address}"
        parsed = urlsplit(proxy_address)
    else:
        parsed = proxy_address

    try:
        port = parsed.port
    except ValueError as exc:
        raise InvalidConfigurationError(
            f"Proxy address '{parsed.geturl()}' has an invalid port"
        ) from exc

    host = parsed.hostname
    if not host:
        raise InvalidConfigurationError(f"Proxy address '{parsed.geturl()}' has no host")

    if port is None:
        port = _DEFAULT_PORTS.get(parsed.scheme.lower())
        if port is None:
            raise InvalidConfigurationError(
                f"Proxy address '{parsed.geturl()}' has no port and no default for its scheme"
            )

    return SocketAddress(host=host, port=port)
