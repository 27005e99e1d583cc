"""Credential pairing rule shared by both builder paths."""

from __future__ import annotations

from proxy_transport.errors import InvalidConfigurationError


def check_proxy_params_validity(username: str | None, password: str | None) -> None:
    """Require the proxy username and password to be set together or not at all.

    An empty string counts as present.
    """
    if (username is None) != (password is None):
        raise InvalidConfigurationError(
            "Both proxy_username and proxy_password should be defined or not defined together"
        )
