"""Collect DEM tile XML texts from files, directories, and zip archives."""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Iterable

from dem2tif.errors import SourceError

LOGGER = logging.getLogger("dem2tif.sources")

XML_SUFFIX = ".xml"
ZIP_SUFFIX = ".zip"


def _decode(data: bytes, name: str) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise SourceError(f"Tile is not valid UTF-8: {name}") from exc


def _read_zip(path: Path) -> list[str]:
    """Return the XML members of a zip archive, sorted by member name."""
    try:
        with zipfile.ZipFile(path) as archive:
            names = sorted(
                info.filename
                for info in archive.infolist()
                if not info.is_dir() and info.filename.lower().endswith(XML_SUFFIX)
            )
            return [_decode(archive.read(name), f"{path}:{name}") for name in names]
    except zipfile.BadZipFile as exc:
        raise SourceError(f"Failed to read zip archive: {path}") from exc


def iter_xml_paths(paths: Iterable[Path]) -> list[Path]:
    """Expand directories into their XML and zip files, keeping input order."""
    expanded: list[Path] = []
    for path in paths:
        path = Path(path)
        if path.is_dir():
            expanded.extend(
                sorted(
                    child
                    for child in path.rglob("*")
                    if child.is_file() and child.suffix.lower() in {XML_SUFFIX, ZIP_SUFFIX}
                )
            )
        elif path.exists():
            expanded.append(path)
        else:
            raise SourceError(f"Input not found: {path}")
    return expanded


def load_tile_texts(paths: Iterable[Path]) -> list[str]:
    """Return every tile XML text found in the given inputs."""
    texts: list[str] = []
    for path in iter_xml_paths(paths):
        suffix = path.suffix.lower()
        if suffix == ZIP_SUFFIX:
            members = _read_zip(path)
            LOGGER.debug("Read %s XML member(s) from %s", len(members), path)
            texts.extend(members)
        elif suffix == XML_SUFFIX:
            texts.append(_decode(path.read_bytes(), str(path)))
        else:
            raise SourceError(f"Unsupported input (expected .xml or .zip): {path}")
    if not texts:
        raise SourceError("No XML files found in the inputs.")
    LOGGER.info("Loaded %s tile text(s)", len(texts))
    return texts
