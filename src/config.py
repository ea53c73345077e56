"""
Configuration module for the Dokploy reconcilers.

Loads configuration from environment variables.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class DokployConfig:
    """Dokploy API connection configuration."""

    host: str = "http://localhost:3000"
    api_key: str = field(default="", repr=False)  # Never log the API key
    timeout: int = 30  # seconds per request

    @property
    def api_url(self) -> str:
        """Base URL for API procedures."""
        return f"{self.host.rstrip('/')}/api"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        host = os.getenv("DOKPLOY_HOST", "")
        if not host:
            raise ValueError("DOKPLOY_HOST environment variable must be set.")

        api_key = os.getenv("DOKPLOY_API_KEY", "")
        if not api_key:
            raise ValueError(
                "DOKPLOY_API_KEY environment variable must be set. "
                "API key cannot be empty."
            )

        return cls(
            host=host,
            api_key=api_key,
            timeout=int(os.getenv("DOKPLOY_TIMEOUT", "30")),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(level=os.getenv("LOG_LEVEL", "INFO").upper())


@dataclass
class Config:
    """Main configuration object."""

    dokploy: DokployConfig
    logging: LoggingConfig

    @classmethod
    def from_env(cls):
        """Load all configuration from environment variables."""
        return cls(
            dokploy=DokployConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def default(cls):
        """Return default configuration."""
        return cls(
            dokploy=DokployConfig(),
            logging=LoggingConfig(),
        )


# Global config instance
config: Optional[Config] = None


def load_config() -> Config:
    """Load configuration (singleton pattern)."""
    global config
    if config is None:
        config = Config.from_env()
    return config


def get_config() -> Config:
    """Get the current configuration."""
    if config is None:
        return load_config()
    return config


def reset_config() -> None:
    """Reset configuration (mainly for testing)."""
    global config
    config = None
