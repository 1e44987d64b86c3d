"""Process lifecycle and main entrypoint.

Resolves configuration, binds `app.properties` into `ApplicationProperties`
(which echoes both values to stdout) and exits.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from multiconf_example.config.errors import ConfigError
from multiconf_example.config.loader import (
    active_profile,
    bind_application_properties,
    load_sources,
    parse_overrides,
    resolve_profile_configs,
)
from multiconf_example.observability.logging import configure_logging


logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multiconf-example",
        description="Bind app.properties.* configuration and print it",
        epilog="Any --dotted.key=value argument overrides that key (e.g. --app.properties.firstProperty=hello).",
        allow_abbrev=False,
    )

    parser.add_argument(
        "command",
        nargs="?",
        choices=["run", "print-config"],
        default="run",
        help="run (default): bind and print the properties; print-config: dump the merged config as JSON",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        action="append",
        help="Config file (YAML or .properties); repeatable, skips profile resolution",
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Comma-separated profiles overlaying configs/application-<profile>.* (default: $MULTICONF_PROFILES)",
    )
    parser.add_argument(
        "--configs-dir",
        type=Path,
        default=None,
        help="Directory holding application*.yaml/.properties (default: ./configs)",
    )
    parser.add_argument(
        "--no-dotenv",
        action="store_true",
        help="Do not load ./.env before resolving configuration",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint referenced by pyproject.toml.

    Exit codes: 0 on success, 2 on configuration errors, 1 otherwise.
    """

    argv_list = list(argv) if argv is not None else sys.argv[1:]
    parser = _build_parser()

    try:
        ns, extra = parser.parse_known_args(argv_list)
    except SystemExit as e:
        # argparse has already printed help/usage to stdout/stderr.
        code = e.code
        return int(code) if isinstance(code, int) else 1

    if not ns.no_dotenv:
        # Loaded before profile resolution so .env may set MULTICONF_PROFILES.
        load_dotenv(Path.cwd() / ".env", override=False)
    profile = active_profile(ns.profile)

    configure_logging(level=ns.log_level, fields={"app": parser.prog, "profile": profile or "default"})

    try:
        overrides = parse_overrides(extra)

        if ns.config:
            config_paths = list(ns.config)
        else:
            configs_dir = ns.configs_dir or Path.cwd() / "configs"
            config_paths = resolve_profile_configs(
                profile=profile,
                configs_dir=configs_dir,
            )

        logger.info(
            "config_sources_resolved",
            extra={"config_files": [str(p) for p in config_paths], "override_keys": sorted(overrides)},
        )

        files = load_sources(config_paths, load_dotenv_file=False)

        if ns.command == "print-config":
            merged = {**files, **overrides}
            sys.stdout.write(json.dumps(merged, ensure_ascii=False, indent=2, sort_keys=True))
            sys.stdout.write("\n")
            return 0

        bind_application_properties(files=files, environ=os.environ, overrides=overrides)
        logger.info("config_loaded")
        return 0

    except ConfigError as e:
        logger.error("config_error", extra={"error": str(e)})
        sys.stderr.write(f"ConfigError: {e}\n")
        return 2
    except Exception as e:  # noqa: BLE001
        logger.exception("fatal_error")
        sys.stderr.write(f"Fatal error: {e}\n")
        return 1
