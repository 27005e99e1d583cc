"""Shared test fixtures and hypothesis strategies for the proxy transport test suite."""

from __future__ import annotations

import os

import httpx
import pytest
from hypothesis import strategies as st


# ---------------------------------------------------------------------------
# Environment isolation for ProxySettings
# ---------------------------------------------------------------------------

@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Drop any PROXY_TRANSPORT_* variables inherited from the outer environment."""
    for key in list(os.environ):
        if key.startswith("PROXY_TRANSPORT_"):
            monkeypatch.delenv(key)
    return monkeypatch


# ---------------------------------------------------------------------------
# Fake forward proxy
# ---------------------------------------------------------------------------

class FakeProxy:
    """Stands in for the proxy hop behind ``httpx.HTTPTransport``.

    Pass ``open`` as the builder's transport opener. Every httpx.Proxy the
    transport opens is recorded, and requests sent without the expected
    credentials are challenged with 407, either as a response (forwarded
    plain HTTP) or as a refused CONNECT tunnel. Request bodies are consumed
    from ``request.stream`` the way a network transport writes them out.
    """

    def __init__(
        self,
        auth: tuple[str, str] | None = ("alice", "secret"),
        tunnel: bool = False,
    ) -> None:
        self.auth = auth
        self.tunnel = tunnel
        self.opened: list[httpx.Proxy] = []
        self.seen: list[tuple[httpx.Proxy, httpx.Request]] = []
        self.bodies: list[bytes] = []
        self.closed = 0

    def open(self, proxy: httpx.Proxy) -> httpx.BaseTransport:
        self.opened.append(proxy)
        return _FakeProxyHop(self, proxy)

    def respond(self, proxy: httpx.Proxy, request: httpx.Request) -> httpx.Response:
        self.seen.append((proxy, request))
        self.bodies.append(b"".join(request.stream))
        if self.auth is not None and proxy.auth != self.auth:
            if self.tunnel:
                raise httpx.ProxyError("407 Proxy Authentication Required", request=request)
            return httpx.Response(407, headers={"Proxy-Authenticate": 'Basic realm="proxy"'})
        return httpx.Response(200, json={"proxy": str(proxy.url)})


class _FakeProxyHop(httpx.BaseTransport):
    def __init__(self, fake: FakeProxy, proxy: httpx.Proxy) -> None:
        self._fake = fake
        self._proxy = proxy

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        return self._fake.respond(self._proxy, request)

    def close(self) -> None:
        self._fake.closed += 1


@pytest.fixture
def fake_proxy() -> FakeProxy:
    return FakeProxy()


# ---------------------------------------------------------------------------
# Hypothesis strategies (reusable across property tests)
# ---------------------------------------------------------------------------

proxy_hosts = st.from_regex(r"[a-z]{3,10}\.(com|org|net|internal)", fullmatch=True)
proxy_ports = st.integers(min_value=1, max_value=65535)
proxy_addresses = st.builds(lambda host, port: f"http://{host}:{port}", proxy_hosts, proxy_ports)

# Present or absent credential values; the empty string counts as present
optional_secrets = st.none() | st.text(min_size=0, max_size=20)
credential_values = st.text(min_size=1, max_size=20)

target_addresses = st.tuples(
    st.from_regex(r"(10|192)\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}", fullmatch=True),
    st.integers(min_value=1, max_value=65535),
)
