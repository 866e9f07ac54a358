"""Caller-facing wrapper around a remote pixel set.

Pixels ties together the pixel set descriptor, the raw-data handle scope
and the tiled retrieval pipeline. Regions are requested with optional
inclusive [lo, hi] ranges per axis, which are clamped rather than
rejected.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import numpy as np

from omero_tiles.pixels.bounds import AxisRange, BoundsResolver
from omero_tiles.pixels.coordinates import Bounds, Coordinates
from omero_tiles.pixels.handle import AccessGuard, HandleScope
from omero_tiles.pixels.region import RegionAssembler
from omero_tiles.pixels.tiling import TileFetcher
from omero_tiles.pixels.types import (
    PixelsDescriptor,
    PlaneInfo,
    PlaneInfoClient,
    RawDataClient,
)
from omero_tiles.utils.logging import (
    get_logger,
    reset_plane,
    set_correlation_context,
)

logger = get_logger(__name__)


class Pixels:
    """A remote 5D pixel set with tiled region retrieval.

    Usage:
        pixels = Pixels(client.get_pixels(image_id))

        # Whole pixel set, float64 array indexed [t, z, c, y, x]
        data = pixels.get_all_pixels(client)

        # First channel of a 512x512 corner, as packed bytes
        raw = pixels.get_raw_pixels(
            client, x_range=[0, 511], y_range=[0, 511], c_range=[0, 0]
        )

        # Share one raw-data handle across several calls
        with pixels.open(client):
            for t in range(pixels.size_t):
                pixels.get_all_pixels(client, t_range=[t, t])

    Attributes:
        descriptor: Immutable description of the pixel set.
    """

    __slots__ = ("_assembler", "_planes_info", "_resolver", "_scope", "descriptor")

    def __init__(
        self,
        descriptor: PixelsDescriptor,
        *,
        fetcher: TileFetcher | None = None,
    ) -> None:
        """Wrap a pixel set.

        Args:
            descriptor: Description of the remote pixel set.
            fetcher: Tile fetcher to use. Defaults to a TileFetcher with the
                configured maximum tile edge.
        """
        self.descriptor = descriptor
        self._assembler = RegionAssembler(fetcher)
        self._resolver = BoundsResolver()
        self._scope = HandleScope(descriptor.id)
        self._planes_info: tuple[PlaneInfo, ...] = ()

    # ------------------------------------------------------------------
    # Descriptor accessors
    # ------------------------------------------------------------------

    @property
    def id(self) -> int:
        return self.descriptor.id

    @property
    def size_x(self) -> int:
        return self.descriptor.size_x

    @property
    def size_y(self) -> int:
        return self.descriptor.size_y

    @property
    def size_c(self) -> int:
        return self.descriptor.size_c

    @property
    def size_z(self) -> int:
        return self.descriptor.size_z

    @property
    def size_t(self) -> int:
        return self.descriptor.size_t

    @property
    def pixel_type(self) -> str:
        return self.descriptor.pixel_type

    @property
    def bytes_per_pixel(self) -> int:
        return self.descriptor.bytes_per_pixel

    @property
    def pixel_size_x(self) -> float | None:
        return self.descriptor.pixel_size_x

    @property
    def pixel_size_y(self) -> float | None:
        return self.descriptor.pixel_size_y

    @property
    def pixel_size_z(self) -> float | None:
        return self.descriptor.pixel_size_z

    @property
    def time_increment(self) -> float | None:
        return self.descriptor.time_increment

    @property
    def max_tile_edge(self) -> int:
        """Return the longest edge of a single tile request."""
        return self._assembler.fetcher.max_tile_edge

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def get_bounds(
        self,
        x_range: AxisRange = None,
        y_range: AxisRange = None,
        c_range: AxisRange = None,
        z_range: AxisRange = None,
        t_range: AxisRange = None,
    ) -> Bounds:
        """Clamp per-axis ranges against this pixel set's extents."""
        return self._resolver.resolve(
            x_range,
            y_range,
            c_range,
            z_range,
            t_range,
            extents=self.descriptor.extents,
        )

    @contextmanager
    def open(self, client: RawDataClient) -> Iterator[AccessGuard]:
        """Keep a raw-data handle open for the duration of a with-block.

        Retrievals made inside the block reuse the handle instead of
        opening and closing their own.

        Raises:
            ResourceAcquisitionError: If the handle cannot be created.
        """
        with self._scope.acquire(client) as guard:
            yield guard

    def get_all_pixels(
        self,
        client: RawDataClient,
        x_range: AxisRange = None,
        y_range: AxisRange = None,
        c_range: AxisRange = None,
        z_range: AxisRange = None,
        t_range: AxisRange = None,
    ) -> np.ndarray:
        """Retrieve a region as float64 samples.

        Omitted ranges select the whole axis; out-of-range bounds are
        clamped (see omero_tiles.pixels.bounds).

        Returns:
            Array of shape (T, Z, C, Y, X).

        Raises:
            ResourceAcquisitionError: If the raw-data handle cannot be created.
            AccessError: If any tile request fails.
        """
        self._begin_request()
        with self._scope.acquire(client) as guard:
            bounds = self.get_bounds(x_range, y_range, c_range, z_range, t_range)
            logger.info(
                "Retrieving pixels",
                start=bounds.start.to_tuple(),
                size=bounds.size.to_tuple(),
                planes=bounds.plane_count,
            )
            return self._assembler.fetch_region(
                guard.handle, bounds, pixels_id=self.id
            )

    def get_raw_pixels(
        self,
        client: RawDataClient,
        bpp: int | None = None,
        x_range: AxisRange = None,
        y_range: AxisRange = None,
        c_range: AxisRange = None,
        z_range: AxisRange = None,
        t_range: AxisRange = None,
    ) -> np.ndarray:
        """Retrieve a region as packed big-endian bytes.

        Args:
            client: Client able to open a raw-data handle.
            bpp: Bytes per sample. Defaults to the pixel type's width.
            x_range: Optional [lo, hi] column range.
            y_range: Optional [lo, hi] row range.
            c_range: Optional [lo, hi] channel range.
            z_range: Optional [lo, hi] focal plane range.
            t_range: Optional [lo, hi] timepoint range.

        Returns:
            uint8 array of shape (T, Z, C, Y * X * bpp).

        Raises:
            ResourceAcquisitionError: If the raw-data handle cannot be created.
            AccessError: If any tile request fails.
        """
        bpp = self.bytes_per_pixel if bpp is None else bpp
        self._begin_request()
        with self._scope.acquire(client) as guard:
            bounds = self.get_bounds(x_range, y_range, c_range, z_range, t_range)
            logger.info(
                "Retrieving raw pixels",
                start=bounds.start.to_tuple(),
                size=bounds.size.to_tuple(),
                planes=bounds.plane_count,
                bpp=bpp,
            )
            return self._assembler.fetch_raw_region(
                guard.handle, bounds, bpp, pixels_id=self.id
            )

    def get_tile(
        self,
        client: RawDataClient,
        position: Coordinates,
        width: int,
        height: int,
    ) -> np.ndarray:
        """Retrieve one plane region as float64 samples indexed [y, x]."""
        with self._scope.acquire(client) as guard:
            return self._assembler.fetcher.fetch_plane(
                guard.handle, position, width, height, pixels_id=self.id
            )

    def get_raw_tile(
        self,
        client: RawDataClient,
        position: Coordinates,
        width: int,
        height: int,
        bpp: int,
    ) -> np.ndarray:
        """Retrieve one plane region as packed bytes."""
        with self._scope.acquire(client) as guard:
            return self._assembler.fetcher.fetch_raw_plane(
                guard.handle, position, width, height, bpp, pixels_id=self.id
            )

    def _begin_request(self) -> None:
        reset_plane()
        set_correlation_context(request_id=uuid.uuid4().hex, pixels_id=self.id)

    # ------------------------------------------------------------------
    # Plane acquisition metadata
    # ------------------------------------------------------------------

    def load_planes_info(self, client: PlaneInfoClient) -> None:
        """Fetch and cache the acquisition metadata of every plane."""
        self._planes_info = tuple(client.get_plane_infos(self.id))
        logger.debug("Loaded plane info", planes=len(self._planes_info))

    @property
    def planes_info(self) -> tuple[PlaneInfo, ...]:
        """Return cached plane metadata (empty until load_planes_info)."""
        return self._planes_info

    def mean_time_interval(self) -> float | None:
        """Return the mean interval between consecutive timepoints.

        Each timepoint is stamped with the smallest delta_t among its
        planes. Returns None if fewer than two timepoints are stamped.
        """
        stamps: dict[int, float] = {}
        for plane in self._planes_info:
            if plane.delta_t is None:
                continue
            current = stamps.get(plane.the_t)
            if current is None or plane.delta_t < current:
                stamps[plane.the_t] = plane.delta_t

        if len(stamps) < 2:
            return None
        times = [stamps[t] for t in sorted(stamps)]
        return float(np.mean(np.diff(times)))

    def mean_exposure_time(self, channel: int) -> float | None:
        """Return the mean exposure time of a channel, or None if unknown."""
        exposures = [
            p.exposure_time
            for p in self._planes_info
            if p.the_c == channel and p.exposure_time is not None
        ]
        if not exposures:
            return None
        return float(np.mean(exposures))

    def position_x(self) -> float | None:
        """Return the smallest stage X position over all planes."""
        return self._min_position(lambda p: p.position_x)

    def position_y(self) -> float | None:
        """Return the smallest stage Y position over all planes."""
        return self._min_position(lambda p: p.position_y)

    def position_z(self) -> float | None:
        """Return the smallest stage Z position over all planes."""
        return self._min_position(lambda p: p.position_z)

    def _min_position(
        self, getter: Callable[[PlaneInfo], float | None]
    ) -> float | None:
        values = [v for v in map(getter, self._planes_info) if v is not None]
        return min(values) if values else None
