"""Exception hierarchy for dem2tif."""

from __future__ import annotations

from typing import Sequence


class Dem2TifError(Exception):
    """Base class for all dem2tif failures."""


class ParseError(Dem2TifError):
    """A tile's XML text could not be turned into a tile record."""


class MalformedMarkupError(ParseError):
    """The tile text is not well-formed XML."""


class StructureMissingError(ParseError):
    """A structural root element (Dataset or DEM) is absent."""

    def __init__(self, element: str) -> None:
        super().__init__(f"{element} root not found")
        self.element = element


class FieldMissingError(ParseError):
    """A required element is absent from the tile."""

    def __init__(self, field: str) -> None:
        super().__init__(f"Required XML element not found: {field}")
        self.field = field


class InvalidFieldError(ParseError):
    """A required element is present but its text is not usable."""

    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"Invalid value for {field}: {value!r}")
        self.field = field
        self.value = value


class IngestionError(Dem2TifError):
    """One or more tiles failed to parse during ingestion."""

    def __init__(self, failures: Sequence[tuple[int, BaseException]]) -> None:
        self.failures = sorted(failures, key=lambda item: item[0])
        detail = ", ".join(f"Task {index}: {exc}" for index, exc in self.failures)
        super().__init__(f"XML parsing errors: {detail}")


class IngestionCancelled(Dem2TifError):
    """Ingestion stopped before every tile was parsed."""


class CatalogError(Dem2TifError):
    """The parsed tiles cannot form a consistent catalog."""


class MixedMeshFormatError(CatalogError):
    """Second mesh (6 digit) and third mesh (8 digit) codes were mixed."""

    def __init__(self) -> None:
        super().__init__("Mixed mesh format (2nd mesh and 3rd mesh)")


class InvalidMeshCodeError(CatalogError):
    """A mesh code is neither 6 nor 8 decimal digits long."""

    def __init__(self, code: int) -> None:
        super().__init__(f"Incorrect Mesh code: mesh_code={code}")
        self.code = code


class AssemblyError(Dem2TifError):
    """The mosaic cannot be assembled from the catalog."""


class ImageTooLargeError(AssemblyError):
    """The computed mosaic exceeds the supported pixel dimensions."""

    def __init__(self, width: int, height: int) -> None:
        super().__init__(f"Image size is too large: x={width}, y={height}")
        self.width = width
        self.height = height


class PixelSizeMismatchError(AssemblyError):
    """A tile's pixel size differs from the mosaic pixel size."""

    def __init__(
        self,
        mesh_code: int,
        expected: tuple[float, float],
        actual: tuple[float, float],
    ) -> None:
        super().__init__(
            f"Pixel size mismatch for mesh {mesh_code}: expected {expected}, got {actual}"
        )
        self.mesh_code = mesh_code
        self.expected = expected
        self.actual = actual


class EncodeError(Dem2TifError):
    """The grid and transform cannot be encoded as a GeoTIFF."""


class SourceError(Dem2TifError):
    """Tile texts could not be collected from the given inputs."""


class ConfigError(Dem2TifError):
    """A convert config file is unreadable or fails validation."""
