from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence, TextIO

import yaml
from dotenv import load_dotenv

from multiconf_example.config.errors import ConfigError, MissingConfigurationError
from multiconf_example.config.model import ApplicationProperties


logger = logging.getLogger(__name__)

_ENV_PLACEHOLDER_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

PROFILES_ENV_VAR = "MULTICONF_PROFILES"
CONFIG_BASENAME = "application"
CONFIG_SUFFIXES = (".yaml", ".yml", ".properties")

_PROPERTIES_WHITESPACE = " \t\f"
_PROPERTIES_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


@dataclass(frozen=True, slots=True)
class _UnresolvedEnvRef:
    """Tracks an unresolved ${ENV_VAR} reference for better error messages."""

    var_name: str
    source_file: str
    key_path: str


class _ConfigYamlLoader(yaml.SafeLoader):
    """SafeLoader that leaves date/timestamp-looking scalars as plain strings."""


_ConfigYamlLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _load_yaml(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    return yaml.load(text, Loader=_ConfigYamlLoader)


def _unescape_properties(text: str, *, path: Path) -> str:
    """Decode `\\t`, `\\n`, `\\r`, `\\f`, `\\uXXXX` and `\\<char>` -> `<char>`."""

    out: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        if i + 1 == len(text):
            break
        nxt = text[i + 1]
        if nxt == "u":
            digits = text[i + 2 : i + 6]
            if len(digits) != 4 or not all(c in "0123456789abcdefABCDEF" for c in digits):
                raise ConfigError(f"Malformed \\uxxxx escape in {text!r}", path=str(path))
            out.append(chr(int(digits, 16)))
            i += 6
            continue
        out.append(_PROPERTIES_ESCAPES.get(nxt, nxt))
        i += 2
    return "".join(out)


def _split_property(line: str) -> tuple[str, str]:
    # The key ends at the first unescaped '=', ':' or whitespace.
    i = 0
    escaped = False
    while i < len(line):
        ch = line[i]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch in "=:" or ch in _PROPERTIES_WHITESPACE:
            break
        i += 1

    key = line[:i]
    rest = line[i:].lstrip(_PROPERTIES_WHITESPACE)
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip(_PROPERTIES_WHITESPACE)
    return key, rest


def _ends_with_continuation(line: str) -> bool:
    trailing = len(line) - len(line.rstrip("\\"))
    return trailing % 2 == 1


def _load_properties(path: Path) -> dict[str, str]:
    """Parse a Java-style `.properties` file.

    Supports `key=value`, `key: value` and `key value`, `#`/`!` comments,
    backslash line continuations and Java escapes in keys and values.
    """

    out: dict[str, str] = {}
    pending: str | None = None
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        stripped = raw_line.lstrip(_PROPERTIES_WHITESPACE)
        if pending is None:
            if not stripped or stripped[0] in "#!":
                continue
            line = stripped
        else:
            line = pending + stripped

        if _ends_with_continuation(line):
            pending = line[:-1]
            continue
        pending = None

        key, value = _split_property(line)
        out[_unescape_properties(key, path=path)] = _unescape_properties(value, path=path)

    if pending is not None:
        # Java treats a continuation at end of file as the end of the entry.
        key, value = _split_property(pending)
        out[_unescape_properties(key, path=path)] = _unescape_properties(value, path=path)
    return out


def _flatten(obj: Mapping[Any, Any], *, prefix: str, source_file: str) -> dict[str, str]:
    """Flatten nested mappings into dotted keys with string values.

    - `null` leaves (`key:` with nothing after it) bind as empty strings.
    - Booleans are rendered lower-case, other scalars via `str()`.
    - Lists and other containers are rejected.
    """

    out: dict[str, str] = {}
    for k, v in obj.items():
        key = f"{prefix}.{k}" if prefix else str(k)
        if v is None:
            out[key] = ""
        elif isinstance(v, Mapping):
            out.update(_flatten(v, prefix=key, source_file=source_file))
        elif isinstance(v, bool):
            out[key] = "true" if v else "false"
        elif isinstance(v, (str, int, float)):
            out[key] = str(v)
        else:
            raise ConfigError(
                f"must be a scalar value, got {type(v).__name__} in {source_file}",
                path=key,
            )
    return out


def _expand_env_in_values(
    values: Mapping[str, str],
    *,
    source_file: str,
    unresolved: list[_UnresolvedEnvRef],
) -> dict[str, str]:
    out: dict[str, str] = {}
    for key_path, value in values.items():

        def repl(match: re.Match[str]) -> str:
            name = match.group(1)
            resolved = os.getenv(name)
            if resolved is None:
                unresolved.append(
                    _UnresolvedEnvRef(var_name=name, source_file=source_file, key_path=key_path)
                )
                return match.group(0)
            return resolved

        out[key_path] = _ENV_PLACEHOLDER_RE.sub(repl, value)
    return out


def _read_fragment(path: Path) -> dict[str, str]:
    if path.suffix == ".properties":
        return _load_properties(path)

    fragment = _load_yaml(path)
    if fragment is None:
        fragment = {}
    if not isinstance(fragment, Mapping):
        raise ConfigError(f"Top-level YAML must be a mapping/dict: {path}")
    return _flatten(fragment, prefix="", source_file=str(path))


def load_sources(
    paths: Path | Sequence[Path],
    *,
    load_dotenv_file: bool = True,
    dotenv_path: Path | None = None,
) -> dict[str, str]:
    """Load config files into a flat dotted-key map, expanding `${ENV_VAR}` placeholders.

    Args:
        paths: Zero or more YAML or `.properties` files. Later files override
            earlier ones.
        load_dotenv_file: Whether to load a .env file before expansion.
        dotenv_path: Optional explicit .env path. When omitted, attempts to load
            a `.env` in the current working directory.

    Raises:
        ConfigError: If a file is missing or invalid, or env expansion is unresolved.
    """

    file_list: list[Path] = [paths] if isinstance(paths, Path) else list(paths)

    if load_dotenv_file:
        # Existing environment variables win over .env entries.
        load_dotenv(dotenv_path or Path.cwd() / ".env", override=False)

    merged: dict[str, str] = {}
    unresolved: list[_UnresolvedEnvRef] = []
    for p in file_list:
        if not p.exists():
            raise ConfigError(f"Config file not found: {p}")
        try:
            fragment = _read_fragment(p)
        except ConfigError:
            raise
        except Exception as e:  # noqa: BLE001
            raise ConfigError(f"Failed to read config: {p}: {e}") from e

        merged.update(_expand_env_in_values(fragment, source_file=str(p), unresolved=unresolved))

    if unresolved:
        lines: list[str] = ["Unresolved environment variables in config:"]
        for ref in unresolved:
            lines.append(f"- {ref.var_name} (missing) at {ref.key_path} in {ref.source_file}")
        raise ConfigError("\n".join(lines))

    return merged


def _find_config_file(configs_dir: Path, stem: str) -> Path | None:
    for suffix in CONFIG_SUFFIXES:
        candidate = configs_dir / f"{stem}{suffix}"
        if candidate.exists():
            return candidate
    return None


def resolve_profile_configs(*, profile: str | None, configs_dir: Path) -> list[Path]:
    """Resolve the config file list for the active profiles.

    - profile=None -> [configs/application.yaml] (when present)
    - profile=dev -> [configs/application.yaml, configs/application-dev.yaml]
    - profile="dev,local" overlays each profile in order.
    """

    files: list[Path] = []
    base = _find_config_file(configs_dir, CONFIG_BASENAME)
    if base is not None:
        files.append(base)

    for name in _split_profiles(profile):
        found = _find_config_file(configs_dir, f"{CONFIG_BASENAME}-{name}")
        if found is None:
            raise ConfigError(f"Unknown profile: {name} (no {CONFIG_BASENAME}-{name}.* in {configs_dir})")
        files.append(found)

    return files


def _split_profiles(profile: str | None) -> list[str]:
    if not profile:
        return []
    return [p.strip() for p in profile.split(",") if p.strip()]


def active_profile(explicit: str | None, environ: Mapping[str, str] | None = None) -> str | None:
    if explicit:
        return explicit
    env = os.environ if environ is None else environ
    return env.get(PROFILES_ENV_VAR) or None


def env_var_name(key: str) -> str:
    """Relaxed environment form of a dotted key: `app.properties.firstProperty` -> `APP_PROPERTIES_FIRSTPROPERTY`."""

    return key.replace("-", "").replace(".", "_").upper()


def parse_overrides(tokens: Iterable[str]) -> dict[str, str]:
    """Parse `--dotted.key=value` command-line tokens."""

    out: dict[str, str] = {}
    for token in tokens:
        if not token.startswith("--") or "=" not in token:
            raise ConfigError(f"Override must look like --key=value: {token!r}")
        key, value = token[2:].split("=", 1)
        if not key:
            raise ConfigError(f"Override has an empty key: {token!r}")
        out[key] = value
    return out


def resolve(
    prefix: str,
    keys: Sequence[str],
    *,
    files: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, str] | None = None,
) -> tuple[str, ...]:
    """Resolve `prefix.key` for each key, in order.

    Precedence (highest first): overrides, environment, files.

    Raises:
        MissingConfigurationError: For the first key (in `keys` order) that no
            source provides.
    """

    file_values = files or {}
    env = os.environ if environ is None else environ
    cli = overrides or {}

    values: list[str] = []
    for key in keys:
        full_key = f"{prefix}.{key}" if prefix else key
        if full_key in cli:
            values.append(cli[full_key])
        elif env_var_name(full_key) in env:
            values.append(env[env_var_name(full_key)])
        elif full_key in file_values:
            values.append(file_values[full_key])
        else:
            raise MissingConfigurationError(full_key)
    return tuple(values)


def bind_application_properties(
    *,
    files: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, str] | None = None,
    out: TextIO | None = None,
) -> ApplicationProperties:
    first, second = resolve(
        ApplicationProperties.PREFIX,
        ApplicationProperties.KEYS,
        files=files,
        environ=environ,
        overrides=overrides,
    )
    return ApplicationProperties(first, second, out=out)
