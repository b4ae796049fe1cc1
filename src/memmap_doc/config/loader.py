"""
memmap-doc — runtime config loader.

File: src/memmap_doc/config/loader.py

Purpose
- Load effective runtime config from defaults, TOML file, env vars, and CLI overrides.

Functional requirements
- Precedence: CLI > env (``MEMMAP_``) > file > defaults.
- A missing default ``memmap.toml`` is not an error; a missing explicit path is.
- ``logging.file`` is resolved relative to the config file's directory.
- The merged result is validated by the schema before it is returned.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from memmap_doc.config.schema import (
    PATH_FIELDS,
    assert_valid_config,
    default_config,
    merge_config,
)
from memmap_doc.constants import DEFAULT_CONFIG_FILE, ENV_PREFIX

# Settings reachable from the environment, and whether they parse as integers.
_ENV_SETTINGS: Final[tuple[tuple[tuple[str, str], bool], ...]] = (
    (("logging", "level"), False),
    (("logging", "format"), False),
    (("logging", "file"), False),
    (("output", "format"), False),
    (("output", "indent"), True),
)


class ConfigLoadError(ValueError):
    """Raised when config cannot be loaded or overrides cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load effective config with deterministic precedence: CLI > env > file > defaults."""

    explicit = config_path is not None
    resolved_path = (
        Path(config_path).expanduser().resolve()
        if explicit
        else (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    )

    merged = assert_valid_config(
        merge_config(default_config(), _read_toml(resolved_path, required=explicit))
    )
    merged = merge_config(merged, env_overrides(os.environ if environ is None else environ))
    merged = merge_config(merged, _expand_dotted(cli_overrides or {}))
    merged = assert_valid_config(merged)

    return normalize_paths(merged, base_dir=resolved_path.parent)


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``MEMMAP_SECTION_KEY`` variables into a nested override mapping."""

    overrides: dict[str, Any] = {}
    for (section, key), numeric in _ENV_SETTINGS:
        env_name = f"{ENV_PREFIX}{section.upper()}_{key.upper()}"
        raw = environ.get(env_name)
        if raw is None:
            continue
        value: object = raw.strip()
        if numeric:
            try:
                value = int(str(value))
            except ValueError as exc:
                raise ConfigLoadError(
                    f"{env_name} -> {section}.{key} must be an integer"
                ) from exc
        overrides.setdefault(section, {})[key] = value
    return overrides


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Resolve configured path fields relative to ``base_dir``."""

    materialized = merge_config({}, config)
    for section, key in PATH_FIELDS:
        values = materialized.get(section)
        if isinstance(values, dict) and isinstance(values.get(key), str):
            candidate = Path(os.path.expandvars(values[key])).expanduser()
            if not candidate.is_absolute():
                candidate = base_dir / candidate
            values[key] = Path(os.path.normpath(candidate)).as_posix()
    return materialized


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Return deterministic JSON dump of the effective config."""

    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}

    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _expand_dotted(cli_overrides: Mapping[str, object]) -> dict[str, Any]:
    """Turn ``{"logging.level": "DEBUG"}`` into nested sections; ``None`` means unset."""

    payload: dict[str, Any] = {}
    for dotted, value in sorted(cli_overrides.items()):
        if value is None:
            continue
        section, _, key = dotted.partition(".")
        if not section or not key:
            raise ConfigLoadError(f"invalid CLI override key {dotted!r}")
        payload.setdefault(section, {})[key] = value
    return payload


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "env_overrides",
    "load_config",
    "normalize_paths",
]
