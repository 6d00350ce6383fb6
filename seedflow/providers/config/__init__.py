"""Runtime configuration providers."""

from seedflow.providers.config.remote_config_provider import RemoteConfigProvider

__all__ = ["RemoteConfigProvider"]
