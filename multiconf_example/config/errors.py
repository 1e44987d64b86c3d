from __future__ import annotations


class MulticonfError(Exception):
    """Base exception for this project."""


class ConfigError(MulticonfError):
    """Raised when configuration is invalid or incomplete."""

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class MissingConfigurationError(ConfigError):
    """Raised when a required key resolves from no source."""

    def __init__(self, key: str):
        super().__init__("missing required configuration key", path=key)
        self.key = key
