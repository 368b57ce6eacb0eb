"""Convert GSI DEM tile XML into GeoTIFF mosaics."""

__version__ = "0.1.0"
