"""Pixel retrieval layer for omero-tiles.

This package fetches rectangular regions of remote 5D pixel sets
(X, Y, C, Z, T) in bounded-size tiles and assembles them into numpy
arrays, either as float64 samples or as packed bytes.

Key Components:
    - Pixels: Caller-facing wrapper with get_all_pixels / get_raw_pixels
    - Coordinates, Bounds: Immutable 5D index-space primitives
    - BoundsResolver: Permissive clamping of per-axis ranges
    - TileFetcher: Plane retrieval in tiles of at most max_tile_edge
    - RegionAssembler: Multi-plane retrieval in T, Z, C order
    - HandleScope: Scoped sharing of the raw-data access handle

Example:
    from omero_tiles.pixels import Pixels
    from omero_tiles.pixels.blitz import BlitzClient, connect

    client = BlitzClient(connect())
    pixels = Pixels(client.get_pixels(image_id=101))

    # float64 array of shape (T, Z, C, Y, X)
    data = pixels.get_all_pixels(client, x_range=[0, 1023], c_range=[0, 0])
"""

from omero_tiles.pixels.bounds import BoundsResolver, resolve_range
from omero_tiles.pixels.coordinates import Bounds, Coordinates
from omero_tiles.pixels.exceptions import (
    AccessError,
    DataSourceError,
    PixelsError,
    ResourceAcquisitionError,
)
from omero_tiles.pixels.handle import AccessGuard, HandleScope
from omero_tiles.pixels.region import RegionAssembler
from omero_tiles.pixels.tiling import TileFetcher, TileSpec
from omero_tiles.pixels.types import (
    PIXEL_TYPES,
    PixelsDescriptor,
    PlaneInfo,
    PlaneTile,
    RawDataClient,
    RawDataSource,
)
from omero_tiles.pixels.wrapper import Pixels

__all__ = [
    "PIXEL_TYPES",
    "AccessError",
    "AccessGuard",
    "Bounds",
    "BoundsResolver",
    "Coordinates",
    "DataSourceError",
    "HandleScope",
    "Pixels",
    "PixelsDescriptor",
    "PixelsError",
    "PlaneInfo",
    "PlaneTile",
    "RawDataClient",
    "RawDataSource",
    "RegionAssembler",
    "ResourceAcquisitionError",
    "TileFetcher",
    "TileSpec",
    "resolve_range",
]
