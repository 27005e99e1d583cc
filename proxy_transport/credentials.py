"""Scoped proxy credential store.

Each HTTP transport factory owns its own provider, so credentials registered
for one proxy are never visible to another proxy configuration or to any
other host/port.
"""

from __future__ import annotations

import logging

from proxy_transport.types import AuthScope, ProxyCredentials

logger = logging.getLogger(__name__)


class CredentialsProvider:
    """Maps exact (host, port) scopes to proxy credentials."""

    def __init__(self) -> None:
        self._credentials: dict[AuthScope, ProxyCredentials] = {}

    def set_credentials(self, scope: AuthScope, credentials: ProxyCredentials) -> None:
        self._credentials[scope] = credentials
        logger.debug("Registered proxy credentials for %s:%d", scope.host, scope.port)

    def get_credentials(self, scope: AuthScope) -> ProxyCredentials | None:
        """Return the credentials registered for exactly this scope, if any."""
        return self._credentials.get(scope)

    def clear(self) -> None:
        self._credentials.clear()

    def __len__(self) -> int:
        return len(self._credentials)
