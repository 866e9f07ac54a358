"""Tiled plane retrieval.

A plane region larger than the server's comfortable transfer size is
split into a grid of sub-tiles whose edges never exceed ``max_tile_edge``.
Sub-tiles are requested one at a time, X-chunk outer and Y-chunk inner,
and copied into a destination buffer at their offset in the requested
rectangle. Two encodings share the same decomposition:

- numeric: float64 array indexed [y, x]
- raw: flat uint8 array, sample (x, y) at byte ((y * width) + x) * bpp
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import NamedTuple

import numpy as np

from omero_tiles.config import settings
from omero_tiles.pixels.coordinates import Coordinates
from omero_tiles.pixels.exceptions import AccessError, DataSourceError
from omero_tiles.pixels.types import PlaneTile, RawDataSource
from omero_tiles.utils.logging import get_logger

logger = get_logger(__name__)


class TileSpec(NamedTuple):
    """One sub-tile of a plane request.

    Attributes:
        x: Absolute column of the tile origin.
        y: Absolute row of the tile origin.
        offset_x: Column offset inside the requested rectangle.
        offset_y: Row offset inside the requested rectangle.
        width: Tile width (<= max_tile_edge).
        height: Tile height (<= max_tile_edge).
    """

    x: int
    y: int
    offset_x: int
    offset_y: int
    width: int
    height: int


class TileFetcher:
    """Fetches plane regions from a raw-data source in bounded tiles.

    Example:
        >>> fetcher = TileFetcher(max_tile_edge=5000)
        >>> [t.width for t in fetcher.iter_tiles(0, 0, 12000, 1)]
        [5000, 5000, 2000]
    """

    __slots__ = ("_max_tile_edge",)

    def __init__(self, max_tile_edge: int | None = None) -> None:
        """Initialize the fetcher.

        Args:
            max_tile_edge: Longest edge of a single tile request.
                Defaults to settings.MAX_TILE_EDGE.

        Raises:
            ValueError: If max_tile_edge is not positive.
        """
        edge = settings.MAX_TILE_EDGE if max_tile_edge is None else max_tile_edge
        if edge < 1:
            raise ValueError(f"max_tile_edge must be positive, got {edge}")
        self._max_tile_edge = edge

    @property
    def max_tile_edge(self) -> int:
        """Return the longest edge of a single tile request."""
        return self._max_tile_edge

    def iter_tiles(
        self, x: int, y: int, width: int, height: int
    ) -> Iterator[TileSpec]:
        """Decompose a width x height rectangle at (x, y) into sub-tiles.

        Yields tiles X-chunk outer, Y-chunk inner. The last chunk along
        each axis may be shorter than max_tile_edge.
        """
        edge = self._max_tile_edge
        for offset_x in range(0, width, edge):
            tile_w = min(edge, width - offset_x)
            for offset_y in range(0, height, edge):
                tile_h = min(edge, height - offset_y)
                yield TileSpec(
                    x + offset_x, y + offset_y, offset_x, offset_y, tile_w, tile_h
                )

    def fetch_plane(
        self,
        source: RawDataSource,
        position: Coordinates,
        width: int,
        height: int,
        *,
        pixels_id: int | None = None,
    ) -> np.ndarray:
        """Fetch a plane region as float64 samples.

        Args:
            source: Open raw-data access handle.
            position: Plane (c, z, t) and top-left (x, y) of the region.
            width: Region width in pixels.
            height: Region height in pixels.
            pixels_id: Pixel set ID, used for error context only.

        Returns:
            Array of shape (height, width), indexed [y, x].

        Raises:
            AccessError: If any tile request fails.
        """
        plane = np.empty((height, width), dtype=np.float64)
        for spec in self.iter_tiles(position.x, position.y, width, height):
            tile = self._request(source, position, spec, pixels_id)
            rows, cols = tile.values.shape[:2]
            if rows < spec.height or cols < spec.width:
                raise AccessError(
                    f"Cannot read tile: got {cols}x{rows} samples, "
                    f"expected {spec.width}x{spec.height}",
                    pixels_id,
                    position=position,
                    origin=(spec.x, spec.y),
                    size=(spec.width, spec.height),
                )
            plane[
                spec.offset_y : spec.offset_y + spec.height,
                spec.offset_x : spec.offset_x + spec.width,
            ] = tile.values[: spec.height, : spec.width]
        return plane

    def fetch_raw_plane(
        self,
        source: RawDataSource,
        position: Coordinates,
        width: int,
        height: int,
        bpp: int,
        *,
        pixels_id: int | None = None,
    ) -> np.ndarray:
        """Fetch a plane region as packed bytes.

        Args:
            source: Open raw-data access handle.
            position: Plane (c, z, t) and top-left (x, y) of the region.
            width: Region width in pixels.
            height: Region height in pixels.
            bpp: Bytes per sample in both the tile payload and the result.
            pixels_id: Pixel set ID, used for error context only.

        Returns:
            uint8 array of length width * height * bpp.

        Raises:
            ValueError: If bpp is not positive.
            AccessError: If any tile request fails or returns a short payload.
        """
        if bpp < 1:
            raise ValueError(f"bpp must be positive, got {bpp}")

        plane = np.empty(width * height * bpp, dtype=np.uint8)
        # Row-major view: one row holds width * bpp bytes
        rows = plane.reshape(height, width * bpp)
        for spec in self.iter_tiles(position.x, position.y, width, height):
            tile = self._request(source, position, spec, pixels_id)
            expected = spec.width * spec.height * bpp
            if len(tile.raw) < expected:
                raise AccessError(
                    f"Cannot read raw tile: payload has {len(tile.raw)} bytes, "
                    f"expected {expected}",
                    pixels_id,
                    position=position,
                    origin=(spec.x, spec.y),
                    size=(spec.width, spec.height),
                )
            payload = np.frombuffer(tile.raw, dtype=np.uint8, count=expected)
            rows[
                spec.offset_y : spec.offset_y + spec.height,
                spec.offset_x * bpp : (spec.offset_x + spec.width) * bpp,
            ] = payload.reshape(spec.height, spec.width * bpp)
        return plane

    def _request(
        self,
        source: RawDataSource,
        position: Coordinates,
        spec: TileSpec,
        pixels_id: int | None,
    ) -> PlaneTile:
        """Request a single tile, translating source errors into AccessError."""
        logger.debug(
            "Fetching tile",
            x=spec.x,
            y=spec.y,
            width=spec.width,
            height=spec.height,
        )
        try:
            return source.get_tile(
                position.z,
                position.t,
                position.c,
                spec.x,
                spec.y,
                spec.width,
                spec.height,
            )
        except DataSourceError as e:
            logger.warning("Tile fetch failed", x=spec.x, y=spec.y, error=str(e))
            raise AccessError(
                f"Cannot read tile: {e.message}",
                pixels_id,
                position=position,
                origin=(spec.x, spec.y),
                size=(spec.width, spec.height),
            ) from e
        except Exception as e:
            logger.warning("Tile fetch failed", x=spec.x, y=spec.y, error=str(e))
            raise AccessError(
                f"Cannot read tile: {e}",
                pixels_id,
                position=position,
                origin=(spec.x, spec.y),
                size=(spec.width, spec.height),
            ) from e
