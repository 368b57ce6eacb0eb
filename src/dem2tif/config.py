"""Convert config loading and normalization helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import jsonschema

from dem2tif.contracts import SCHEMA_VERSION, validate_convert_config
from dem2tif.dem.geotiff import FLOAT_MODE
from dem2tif.dem.pool import DEFAULT_POOL_SIZE
from dem2tif.errors import ConfigError


@dataclass(frozen=True)
class ConvertConfig:
    """Normalized options for one tile-to-GeoTIFF conversion."""

    inputs: tuple[str, ...] = field(default_factory=tuple)
    output: str | None = None
    mode: str = FLOAT_MODE
    alpha: bool = True
    sea_level_as_zero: bool = False
    pool_size: int = DEFAULT_POOL_SIZE
    check_pixel_size: bool = False
    profile: bool = False

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "schema_version": SCHEMA_VERSION,
            "inputs": list(self.inputs),
            "mode": self.mode,
            "alpha": self.alpha,
            "sea_level_as_zero": self.sea_level_as_zero,
            "pool_size": self.pool_size,
            "check_pixel_size": self.check_pixel_size,
            "profile": self.profile,
        }
        if self.output:
            payload["output"] = self.output
        return payload

    def with_overrides(self, **overrides: Any) -> "ConvertConfig":
        """Return a copy with every non-None override applied."""
        known = {item.name for item in fields(self)}
        updates = {
            key: value for key, value in overrides.items() if key in known and value is not None
        }
        if "inputs" in updates:
            updates["inputs"] = _normalize_inputs(updates["inputs"])
        return replace(self, **updates)


def _normalize_inputs(value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value if str(item))
    if isinstance(value, (str, Path)):
        return (str(value),)
    raise TypeError("Expected string or list of strings.")


def normalize_convert_config(payload: Mapping[str, Any]) -> ConvertConfig:
    """Validate a raw config payload and normalize it into a ConvertConfig."""
    raw = dict(payload)
    if isinstance(raw.get("inputs"), str):
        raw["inputs"] = [raw["inputs"]]
    try:
        validate_convert_config(raw)
    except jsonschema.ValidationError as exc:
        raise ConfigError(f"Invalid convert config: {exc.message}") from exc
    raw.pop("schema_version", None)
    raw["inputs"] = _normalize_inputs(raw.get("inputs"))
    return ConvertConfig(**raw)


def load_convert_config(path: Path) -> ConvertConfig:
    """Load and validate a convert config file from disk."""
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Failed to read convert config {path}: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise ConfigError("Convert config must be a JSON object.")
    return normalize_convert_config(payload)
