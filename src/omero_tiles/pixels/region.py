"""Region assembly across channels, focal planes and timepoints.

Given resolved Bounds, the assembler walks T outermost, then Z, then C,
fetching one plane per (t, z, c) triple through a TileFetcher and storing
it at [t - start.t, z - start.z, c - start.c] of the result.
"""

from __future__ import annotations

from collections.abc import Iterator

import numpy as np

from omero_tiles.pixels.coordinates import Bounds, Coordinates
from omero_tiles.pixels.tiling import TileFetcher
from omero_tiles.pixels.types import RawDataSource
from omero_tiles.utils.logging import get_logger, set_correlation_context

logger = get_logger(__name__)


def iter_planes(bounds: Bounds) -> Iterator[tuple[tuple[int, int, int], Coordinates]]:
    """Yield ((t, z, c) result index, plane position) in T, Z, C order."""
    start, size = bounds.start, bounds.size
    for t in range(size.t):
        for z in range(size.z):
            for c in range(size.c):
                position = Coordinates(
                    x=start.x, y=start.y, c=start.c + c, z=start.z + z, t=start.t + t
                )
                yield (t, z, c), position


class RegionAssembler:
    """Assembles multi-plane regions from tiled plane fetches.

    Only fully assembled results are returned; the first failing plane
    aborts the whole region.
    """

    __slots__ = ("_fetcher",)

    def __init__(self, fetcher: TileFetcher | None = None) -> None:
        """Initialize the assembler.

        Args:
            fetcher: Tile fetcher to use. Defaults to a TileFetcher with the
                configured maximum tile edge.
        """
        self._fetcher = fetcher or TileFetcher()

    @property
    def fetcher(self) -> TileFetcher:
        """Return the tile fetcher used for each plane."""
        return self._fetcher

    def fetch_region(
        self,
        source: RawDataSource,
        bounds: Bounds,
        *,
        pixels_id: int | None = None,
    ) -> np.ndarray:
        """Fetch a region as float64 samples.

        Args:
            source: Open raw-data access handle.
            bounds: Resolved region bounds.
            pixels_id: Pixel set ID, used for logging and error context.

        Returns:
            Array of shape (T, Z, C, Y, X).

        Raises:
            AccessError: If any tile request fails.
        """
        size = bounds.size
        result = np.empty((size.t, size.z, size.c, size.y, size.x), dtype=np.float64)
        for index, position in iter_planes(bounds):
            self._log_plane(position)
            result[index] = self._fetcher.fetch_plane(
                source, position, size.x, size.y, pixels_id=pixels_id
            )
        return result

    def fetch_raw_region(
        self,
        source: RawDataSource,
        bounds: Bounds,
        bpp: int,
        *,
        pixels_id: int | None = None,
    ) -> np.ndarray:
        """Fetch a region as packed bytes.

        Args:
            source: Open raw-data access handle.
            bounds: Resolved region bounds.
            bpp: Bytes per sample.
            pixels_id: Pixel set ID, used for logging and error context.

        Returns:
            uint8 array of shape (T, Z, C, Y * X * bpp).

        Raises:
            ValueError: If bpp is not positive.
            AccessError: If any tile request fails.
        """
        if bpp < 1:
            raise ValueError(f"bpp must be positive, got {bpp}")

        size = bounds.size
        result = np.empty(
            (size.t, size.z, size.c, size.y * size.x * bpp), dtype=np.uint8
        )
        for index, position in iter_planes(bounds):
            self._log_plane(position)
            result[index] = self._fetcher.fetch_raw_plane(
                source, position, size.x, size.y, bpp, pixels_id=pixels_id
            )
        return result

    @staticmethod
    def _log_plane(position: Coordinates) -> None:
        set_correlation_context(plane=f"t={position.t},z={position.z},c={position.c}")
        logger.debug("Fetching plane", x=position.x, y=position.y)
