"""Pydantic Settings for the proxy transport builders.

All environment variables use the PROXY_TRANSPORT_ prefix.
Example: PROXY_TRANSPORT_PROXY_ADDRESS=http://proxy.example.com:8080
"""

from __future__ import annotations

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings

from proxy_transport import logging_config
from proxy_transport.errors import InvalidConfigurationError
from proxy_transport.grpc_channel import ChannelConfigurator, create_grpc_channel_configurator
from proxy_transport.http_transport import (
    HttpTransportFactory,
    ProxyHttpTransportFactory,
    create_http_transport_factory,
)
from proxy_transport.validation import check_proxy_params_validity


class ProxySettings(BaseSettings):
    """Proxy configuration validated from environment variables."""

    # Proxy
    proxy_address: str | None = None  # e.g. "http://proxy.example.com:8080"
    proxy_username: str | None = None
    proxy_password: SecretStr | None = None

    # HTTP transport
    http_retries: int = Field(default=0, ge=0)

    # Logging
    log_level: str = "INFO"

    model_config = {"env_prefix": "PROXY_TRANSPORT_"}

    @field_validator("proxy_address", mode="before")
    @classmethod
    def _blank_address_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_credentials_paired(self) -> ProxySettings:
        # Credentials are ignored when no proxy is configured
        if self.proxy_address is None:
            return self
        try:
            check_proxy_params_validity(self.proxy_username, self._password())
        except InvalidConfigurationError as exc:
            raise ValueError(exc.message) from exc
        return self

    def configure_logging(self) -> None:
        """Install JSON logging at the configured level."""
        logging_config.configure_logging(self.log_level)

    def _password(self) -> str | None:
        if self.proxy_password is None:
            return None
        return self.proxy_password.get_secret_value()

    def grpc_channel_configurator(self) -> ChannelConfigurator | None:
        return create_grpc_channel_configurator(
            self.proxy_address, self.proxy_username, self._password()
        )

    def http_transport_factory(self) -> HttpTransportFactory | None:
        factory = create_http_transport_factory(
            self.proxy_address, self.proxy_username, self._password()
        )
        if isinstance(factory, ProxyHttpTransportFactory) and factory.http_client_builder:
            factory.http_client_builder.set_retries(self.http_retries)
        return factory
