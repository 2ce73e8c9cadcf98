"""
Kernel settings (``leave_kernel.config``).

Responsibility
--------------
Resolves the runtime settings for the store connection and logging.
Layering, lowest precedence first:

1. Built-in defaults on ``KernelSettings``.
2. An optional YAML file, path given by ``LEAVE_KERNEL_CONFIG`` or the
   ``path`` argument.
3. Environment variables (``LEAVE_KERNEL_*``; ``DATABASE_URL`` is honoured
   as a fallback for the database URL).

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown YAML keys  -> ``ValueError``.
* Non-integer numeric settings  -> ``ValueError``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

CONFIG_PATH_ENV = "LEAVE_KERNEL_CONFIG"

DEFAULT_DATABASE_URL = "sqlite:///leave_kernel.db"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class KernelSettings:
    """Immutable settings snapshot consumed by ``db.engine`` and logging."""

    database_url: str = DEFAULT_DATABASE_URL
    echo_sql: bool = False
    pool_size: int = 10
    max_overflow: int = 10
    pool_timeout: int = 30
    # Upper bound (seconds) on any single store call: statement timeout on
    # PostgreSQL, busy timeout on SQLite.
    store_timeout: int = 15
    log_level: str = "INFO"


# env var -> (field name, parser)
_ENV_FIELDS: dict[str, tuple[str, Any]] = {
    "LEAVE_KERNEL_DATABASE_URL": ("database_url", str),
    "LEAVE_KERNEL_DB_ECHO": ("echo_sql", lambda v: v.strip().lower() in _TRUE_VALUES),
    "LEAVE_KERNEL_POOL_SIZE": ("pool_size", int),
    "LEAVE_KERNEL_MAX_OVERFLOW": ("max_overflow", int),
    "LEAVE_KERNEL_POOL_TIMEOUT": ("pool_timeout", int),
    "LEAVE_KERNEL_STORE_TIMEOUT": ("store_timeout", int),
    "LEAVE_KERNEL_LOG_LEVEL": ("log_level", lambda v: v.strip().upper()),
}


def load_yaml_settings(path: Path) -> dict[str, Any]:
    """
    Load a YAML settings file.

    The file may either hold the settings at top level or under a
    ``leave_kernel:`` key.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the file contains keys that are not settings.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if "leave_kernel" in data:
        data = data["leave_kernel"] or {}

    known = {f.name for f in fields(KernelSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown settings in {path}: {', '.join(unknown)}")
    return data


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> KernelSettings:
    """Build ``KernelSettings`` from defaults, YAML file and environment."""
    env = os.environ if environ is None else environ
    settings = KernelSettings()

    config_path = path or env.get(CONFIG_PATH_ENV)
    if config_path:
        settings = replace(settings, **load_yaml_settings(Path(config_path)))

    if "DATABASE_URL" in env and "LEAVE_KERNEL_DATABASE_URL" not in env:
        settings = replace(settings, database_url=env["DATABASE_URL"])

    overrides: dict[str, Any] = {}
    for var, (name, parse) in _ENV_FIELDS.items():
        if var in env:
            try:
                overrides[name] = parse(env[var])
            except ValueError as exc:
                raise ValueError(f"Invalid value for {var}: {env[var]!r}") from exc
    if overrides:
        settings = replace(settings, **overrides)

    return settings
