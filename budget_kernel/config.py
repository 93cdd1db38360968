"""
Kernel settings (``budget_kernel.config``).

Responsibility
--------------
Loads the handful of runtime settings the duplication engine needs from an
optional YAML file plus environment overrides, and validates them once at
construction time.

Resolution order (later wins)
-----------------------------
1. Dataclass defaults.
2. YAML mapping from ``path`` (or ``$BUDGET_SETTINGS_FILE``).
3. ``$DATABASE_URL`` and ``$BUDGET_LOG_LEVEL``.

Failure modes
-------------
* Explicit path that does not exist  -> ``ConfigurationError``.
* Malformed YAML or a non-mapping document  -> ``ConfigurationError``.
* Unknown keys  -> ``ConfigurationError`` (typos must not silently fall
  back to defaults).
* Invalid values  -> ``ConfigurationError`` from ``__post_init__``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from budget_kernel.exceptions import ConfigurationError
from budget_kernel.logging_config import get_logger

logger = get_logger("config")

SETTINGS_FILE_ENV = "BUDGET_SETTINGS_FILE"
DATABASE_URL_ENV = "DATABASE_URL"
LOG_LEVEL_ENV = "BUDGET_LOG_LEVEL"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class KernelSettings:
    """Runtime settings for the kernel and the duplication drivers."""

    database_url: str = "sqlite+pysqlite:///:memory:"
    echo_sql: bool = False
    log_level: str = "INFO"
    snapshot_format_version: str = "1.0.0"
    accepted_snapshot_versions: tuple[str, ...] = ("1.0.0",)
    max_attachment_bytes: int = 52_428_800

    def __post_init__(self):
        if not self.database_url or not self.database_url.strip():
            raise ConfigurationError("database_url must not be empty")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigurationError(
                f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {self.log_level!r}"
            )
        if self.max_attachment_bytes <= 0:
            raise ConfigurationError("max_attachment_bytes must be positive")
        if self.snapshot_format_version not in self.accepted_snapshot_versions:
            raise ConfigurationError(
                f"snapshot_format_version {self.snapshot_format_version!r} "
                f"is not listed in accepted_snapshot_versions"
            )
        logger.debug("kernel_settings_initialized", extra={
            "dialect": self.database_url.split(":", 1)[0],
            "log_level": self.log_level,
            "snapshot_format_version": self.snapshot_format_version,
        })

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], source: str | None = None) -> KernelSettings:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown settings: {', '.join(unknown)}", source=source
            )
        values = dict(data)
        if "accepted_snapshot_versions" in values:
            accepted = values["accepted_snapshot_versions"]
            if isinstance(accepted, str):
                accepted = [accepted]
            values["accepted_snapshot_versions"] = tuple(str(v) for v in accepted)
        if "max_attachment_bytes" in values:
            try:
                values["max_attachment_bytes"] = int(values["max_attachment_bytes"])
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(
                    f"max_attachment_bytes must be an integer: {exc}", source=source
                ) from exc
        try:
            return cls(**values)
        except TypeError as exc:
            raise ConfigurationError(str(exc), source=source) from exc


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open(encoding="utf-8") as fh:
            document = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read settings file: {exc}", source=str(path)) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Malformed settings file: {exc}", source=str(path)) from exc
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigurationError(
            "Settings file must contain a mapping", source=str(path)
        )
    return document


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> KernelSettings:
    """
    Build KernelSettings from defaults, an optional YAML file and the environment.

    Args:
        path: Settings file.  When None, ``$BUDGET_SETTINGS_FILE`` is used if set.
        environ: Environment mapping (defaults to ``os.environ``).

    Raises:
        ConfigurationError: On a missing file, bad YAML, unknown keys or
            invalid values.
    """
    env = os.environ if environ is None else environ
    data: dict[str, Any] = {}
    source: str | None = None

    settings_path = path if path is not None else env.get(SETTINGS_FILE_ENV)
    if settings_path:
        file_path = Path(settings_path)
        if not file_path.is_file():
            raise ConfigurationError(
                f"Settings file not found: {file_path}", source=str(file_path)
            )
        data.update(_read_yaml(file_path))
        source = str(file_path)

    if env.get(DATABASE_URL_ENV):
        data["database_url"] = env[DATABASE_URL_ENV]
    if env.get(LOG_LEVEL_ENV):
        data["log_level"] = env[LOG_LEVEL_ENV]

    settings = KernelSettings.from_mapping(data, source=source)
    logger.info("settings_loaded", extra={
        "source": source or "defaults",
        "log_level": settings.log_level,
    })
    return settings
