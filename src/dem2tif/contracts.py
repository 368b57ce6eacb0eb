"""Schema validation helpers for convert configs."""

from __future__ import annotations

import json
from importlib import resources
from typing import Any, Mapping

import jsonschema

SCHEMA_VERSION = "1"


def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema bundled in the package."""
    with resources.files("dem2tif.schemas").joinpath(name).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def validate_convert_config(config: Mapping[str, Any]) -> None:
    """Validate a convert config payload against the schema."""
    schema = _load_schema("convert_config.schema.json")
    jsonschema.validate(config, schema)
