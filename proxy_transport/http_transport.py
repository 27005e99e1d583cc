"""HTTP transport factory that routes httpx traffic through a forward proxy.

The factory wraps a pre-configured ``HttpClientBuilder``; every ``create()``
call asks the builder for a fresh ``ProxiedHttpTransport``. Transports talk
to the proxy without credentials until the proxy challenges them (a 407
response, or a CONNECT tunnel refused with 407). Only then do they look up
credentials for the proxy's exact host/port in their own credential store,
retry the request once with basic proxy authentication, and keep
authenticating from then on. Transports that hold credentials buffer a
streamed request body before the first attempt so the retry can resend it.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol, runtime_checkable
from urllib.parse import ParseResult, SplitResult

import httpx

from proxy_transport.credentials import CredentialsProvider
from proxy_transport.errors import InvalidConfigurationError
from proxy_transport.types import AuthScope, ProxyCredentials, SocketAddress, resolve_proxy_endpoint
from proxy_transport.validation import check_proxy_params_validity

logger = logging.getLogger(__name__)

_PROXY_AUTH_REQUIRED = 407

TransportOpener = Callable[[httpx.Proxy], httpx.BaseTransport]


@runtime_checkable
class HttpTransportFactory(Protocol):
    """Produces ready-to-use HTTP transports."""

    def create(self) -> httpx.BaseTransport: ...


def _is_auth_challenge(exc: httpx.ProxyError) -> bool:
    # httpcore reports a refused CONNECT as "<status> <reason>"
    return str(exc).startswith(str(_PROXY_AUTH_REQUIRED))


class ProxiedHttpTransport(httpx.BaseTransport):
    """Sends every request through one proxy, authenticating on challenge."""

    def __init__(
        self,
        proxy: SocketAddress,
        opener: TransportOpener,
        credentials_provider: CredentialsProvider | None = None,
    ) -> None:
        self._proxy = proxy
        self._scope = AuthScope(host=proxy.host, port=proxy.port)
        self._opener = opener
        self._credentials_provider = credentials_provider
        self._lock = threading.Lock()
        self._transport = opener(httpx.Proxy(self.proxy_url))
        self._authenticated = False
        self._retired: list[httpx.BaseTransport] = []

    @property
    def proxy_url(self) -> str:
        return f"http://{self._proxy}"

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    @property
    def transport(self) -> httpx.BaseTransport:
        """The transport currently used to reach the proxy."""
        return self._transport

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            transport, authenticated = self._transport, self._authenticated

        if not authenticated and self._credentials_provider is not None:
            # A challenge replays the request, so a streamed body must be buffered first
            request.read()

        try:
            response = transport.handle_request(request)
        except httpx.ProxyError as exc:
            if authenticated or not _is_auth_challenge(exc):
                raise
            retry = self._authenticate(transport)
            if retry is None:
                raise
            return retry.handle_request(request)

        if response.status_code != _PROXY_AUTH_REQUIRED or authenticated:
            return response

        retry = self._authenticate(transport)
        if retry is None:
            return response
        response.close()
        return retry.handle_request(request)

    def _authenticate(self, challenged: httpx.BaseTransport) -> httpx.BaseTransport | None:
        """Switch to an authenticated transport, or return None if there are no credentials."""
        with self._lock:
            if self._transport is not challenged:
                # Another request already answered the challenge
                return self._transport

            credentials: ProxyCredentials | None = None
            if self._credentials_provider is not None:
                credentials = self._credentials_provider.get_credentials(self._scope)
            if credentials is None:
                logger.warning(
                    "Proxy %s requires authentication but no credentials are registered for it",
                    self._proxy,
                    extra={"proxy_host": self._proxy.host, "proxy_port": self._proxy.port},
                )
                return None

            logger.info(
                "Proxy %s requested authentication, retrying with credentials",
                self._proxy,
                extra={"proxy_host": self._proxy.host, "proxy_port": self._proxy.port},
            )
            self._retired.append(challenged)
            self._transport = self._opener(
                httpx.Proxy(self.proxy_url, auth=(credentials.username, credentials.password))
            )
            self._authenticated = True
            return self._transport

    def close(self) -> None:
        with self._lock:
            transports = [*self._retired, self._transport]
            self._retired = []
        for transport in transports:
            transport.close()


class HttpClientBuilder:
    """Mutable, reusable recipe for proxied HTTP transports."""

    def __init__(self) -> None:
        self._proxy: SocketAddress | None = None
        self._credentials_provider: CredentialsProvider | None = None
        self._retries = 0
        self._opener: TransportOpener | None = None

    @classmethod
    def create(cls) -> HttpClientBuilder:
        return cls()

    @property
    def proxy(self) -> SocketAddress | None:
        return self._proxy

    @property
    def credentials_provider(self) -> CredentialsProvider | None:
        return self._credentials_provider

    @property
    def retries(self) -> int:
        return self._retries

    def set_proxy(self, proxy: SocketAddress) -> HttpClientBuilder:
        self._proxy = proxy
        return self

    def set_default_credentials_provider(self, provider: CredentialsProvider) -> HttpClientBuilder:
        self._credentials_provider = provider
        return self

    def set_retries(self, retries: int) -> HttpClientBuilder:
        """Connection retries for the underlying httpx transport."""
        self._retries = retries
        return self

    def set_transport_opener(self, opener: TransportOpener) -> HttpClientBuilder:
        """Swap the transport used to reach the proxy (``httpx.HTTPTransport`` by default)."""
        self._opener = opener
        return self

    def _open(self, proxy: httpx.Proxy) -> httpx.BaseTransport:
        return httpx.HTTPTransport(proxy=proxy, retries=self._retries)

    def build(self) -> ProxiedHttpTransport:
        if self._proxy is None:
            raise InvalidConfigurationError("HTTP client builder has no proxy configured")
        return ProxiedHttpTransport(
            self._proxy,
            opener=self._opener or self._open,
            credentials_provider=self._credentials_provider,
        )


class ProxyHttpTransportFactory:
    """``HttpTransportFactory`` over a pre-configured ``HttpClientBuilder``.

    Can be created with its builder, or created bare and given the builder
    afterwards through ``http_client_builder``. Frameworks that instantiate
    objects without arguments before restoring their state rely on the
    latter.
    """

    def __init__(self, http_client_builder: HttpClientBuilder | None = None) -> None:
        self.http_client_builder = http_client_builder

    def create(self) -> httpx.BaseTransport:
        if self.http_client_builder is None:
            raise InvalidConfigurationError("HTTP transport factory has no client builder attached")
        return self.http_client_builder.build()


def create_http_transport_factory(
    proxy_address: str | ParseResult | SplitResult | None,
    proxy_username: str | None = None,
    proxy_password: str | None = None,
) -> HttpTransportFactory | None:
    """Build a transport factory whose transports go through a forward proxy.

    Returns ``None`` when no proxy address is given.

    Raises
    ------
    InvalidConfigurationError
        If only one of username/password is given, or the address has no
        usable host/port.
    """
    if proxy_address is None:
        logger.debug("No proxy address configured, HTTP transports connect directly")
        return None
    check_proxy_params_validity(proxy_username, proxy_password)

    proxy = resolve_proxy_endpoint(proxy_address)
    http_client_builder = HttpClientBuilder.create().set_proxy(proxy)

    if proxy_username is not None and proxy_password is not None:
        credentials_provider = CredentialsProvider()
        credentials_provider.set_credentials(
            AuthScope(host=proxy.host, port=proxy.port),
            ProxyCredentials(username=proxy_username, password=proxy_password),
        )
        http_client_builder.set_default_credentials_provider(credentials_provider)

    logger.info(
        "HTTP transports will use proxy %s (authenticated: %s)",
        proxy,
        http_client_builder.credentials_provider is not None,
        extra={"proxy_host": proxy.host, "proxy_port": proxy.port},
    )
    return ProxyHttpTransportFactory(http_client_builder)
