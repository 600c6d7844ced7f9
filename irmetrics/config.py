"""Configuration module using Pydantic models."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

_rc_logger = logging.getLogger(__name__)

RC_FILENAME = ".irmrc"

DEFAULT_METRICS = [
    "P@10",
    "P@20",
    "P@30",
    "P@50",
    "P@100",
    "P@200",
    "P@500",
    "P@1000",
    "RBP:95",
]


def _as_list(value: object) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise TypeError(f"expected a list, got {type(value).__name__}")
    if not value:
        raise ValueError("expected at least one entry")
    return [str(v) for v in value]


def _as_bool(value: object) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected true or false, got {value!r}")
    return value


def _as_log_level(value: object) -> str:
    level = str(value).upper()
    if level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
        raise ValueError(f"unknown log level {value!r}")
    return level


# Mapping from .irmrc keys to config field paths
_RC_KEY_MAP: dict[str, tuple[str, object]] = {
    "metrics": ("metrics", _as_list),
    "float-format": ("output.float_format", str),
    "table": ("output.table", _as_bool),
    "log-level": ("log_level", _as_log_level),
}


def rc_paths(explicit: Path | None = None) -> list[Path]:
    """Candidate rc files in increasing order of precedence."""
    paths = [Path.home() / RC_FILENAME, Path.cwd() / RC_FILENAME]
    if explicit is not None:
        paths.append(explicit)
    return paths


def load_rc(path: Path) -> dict:
    """Load a .irmrc TOML file, returning a flat dict of overrides."""
    if not path.is_file():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        _rc_logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def apply_rc(cfg: "IrmConfig", overrides: dict) -> None:
    """Apply .irmrc overrides to an IrmConfig instance."""
    for key, value in overrides.items():
        if key not in _RC_KEY_MAP:
            _rc_logger.warning("Unknown .irmrc key: %s", key)
            continue
        field_path, cast = _RC_KEY_MAP[key]
        parts = field_path.split(".")
        target = getattr(cfg, parts[0]) if len(parts) == 2 else cfg
        try:
            setattr(target, parts[-1], cast(value))
        except (ValidationError, ValueError, TypeError) as exc:
            _rc_logger.warning("Invalid value for %s in .irmrc: %s", key, exc)


class OutputConfig(BaseModel):
    """How averages are printed."""

    model_config = ConfigDict(validate_assignment=True)

    float_format: str = Field(
        default="g",
        description="Python format spec for metric values ('g' = 6 significant digits)",
    )
    table: bool = Field(
        default=False,
        description="Render a rich table instead of tab-separated lines",
    )


class IrmConfig(BaseModel):
    """Top-level configuration."""

    model_config = ConfigDict(validate_assignment=True)

    metrics: list[str] = Field(default_factory=lambda: list(DEFAULT_METRICS), min_length=1)
    output: OutputConfig = Field(default_factory=OutputConfig)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    @classmethod
    def load(cls, explicit_rc: Path | None = None) -> IrmConfig:
        """Defaults overridden by every rc file found, later files winning."""
        cfg = cls()
        for path in rc_paths(explicit_rc):
            apply_rc(cfg, load_rc(path))
        return cfg

    def snapshot(self) -> dict:
        """Return a JSON-serialisable config snapshot."""
        return self.model_dump(mode="json")

