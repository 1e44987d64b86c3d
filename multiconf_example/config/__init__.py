"""Configuration loading and binding.

- YAML or `.properties` files, optionally layered by profile
- Environment variables and `--key=value` overrides on top
- Strict ${ENV_VAR} expansion (missing/empty env vars are errors)
"""

from __future__ import annotations

from multiconf_example.config.errors import ConfigError, MissingConfigurationError, MulticonfError
from multiconf_example.config.loader import (
    bind_application_properties,
    env_var_name,
    load_sources,
    resolve,
    resolve_profile_configs,
)
from multiconf_example.config.model import ApplicationProperties

__all__ = [
    "ApplicationProperties",
    "ConfigError",
    "MissingConfigurationError",
    "MulticonfError",
    "bind_application_properties",
    "env_var_name",
    "load_sources",
    "resolve",
    "resolve_profile_configs",
]
