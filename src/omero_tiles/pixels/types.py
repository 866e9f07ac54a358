"""Type definitions for the pixel retrieval layer.

Contains data models for remote pixel sets and fetched tiles, and the
protocols that raw-data clients and sources implement. Samples travel
over the wire in big-endian order, as OMERO's RawPixelsStore sends them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import numpy as np

from omero_tiles.pixels.coordinates import Coordinates

# OMERO pixel type name -> big-endian numpy dtype
PIXEL_TYPES: dict[str, np.dtype] = {
    "int8": np.dtype("i1"),
    "uint8": np.dtype("u1"),
    "int16": np.dtype(">i2"),
    "uint16": np.dtype(">u2"),
    "int32": np.dtype(">i4"),
    "uint32": np.dtype(">u4"),
    "float": np.dtype(">f4"),
    "double": np.dtype(">f8"),
}


def pixel_dtype(pixel_type: str) -> np.dtype:
    """Return the wire dtype for an OMERO pixel type name.

    Raises:
        ValueError: If the pixel type is not supported.
    """
    try:
        return PIXEL_TYPES[pixel_type]
    except KeyError:
        raise ValueError(
            f"Unsupported pixel type '{pixel_type}'. "
            f"Supported: {', '.join(sorted(PIXEL_TYPES))}"
        ) from None


@dataclass(frozen=True)
class PixelsDescriptor:
    """Immutable description of a remote pixel set.

    Attributes:
        id: Remote pixel set ID.
        size_x: Number of columns.
        size_y: Number of rows.
        size_c: Number of channels.
        size_z: Number of focal planes.
        size_t: Number of timepoints.
        pixel_type: OMERO pixel type name (e.g., "uint16").
        pixel_size_x: Physical pixel width in micrometres, if known.
        pixel_size_y: Physical pixel height in micrometres, if known.
        pixel_size_z: Physical section thickness in micrometres, if known.
        time_increment: Time between timepoints in seconds, if known.
    """

    id: int
    size_x: int
    size_y: int
    size_c: int
    size_z: int
    size_t: int
    pixel_type: str
    pixel_size_x: float | None = None
    pixel_size_y: float | None = None
    pixel_size_z: float | None = None
    time_increment: float | None = None

    @property
    def extents(self) -> Coordinates:
        """Return the sizes along (x, y, c, z, t) as Coordinates."""
        return Coordinates(
            x=self.size_x, y=self.size_y, c=self.size_c, z=self.size_z, t=self.size_t
        )

    @property
    def bytes_per_pixel(self) -> int:
        """Return the number of bytes per sample."""
        return pixel_dtype(self.pixel_type).itemsize


@dataclass(frozen=True)
class PlaneTile:
    """A rectangular tile of one plane, as returned by a raw-data source.

    Attributes:
        width: Tile width in pixels.
        height: Tile height in pixels.
        values: Samples as float64, indexed [y, x].
        raw: Samples as big-endian bytes, row-major.
    """

    width: int
    height: int
    values: np.ndarray = field(repr=False)
    raw: bytes = field(repr=False)

    @classmethod
    def from_bytes(
        cls, raw: bytes, width: int, height: int, pixel_type: str
    ) -> PlaneTile:
        """Decode a raw tile payload into a PlaneTile.

        Raises:
            ValueError: If the payload holds fewer than width * height samples.
        """
        dtype = pixel_dtype(pixel_type)
        count = width * height
        if len(raw) < count * dtype.itemsize:
            raise ValueError(
                f"Tile payload has {len(raw)} bytes, "
                f"expected {count * dtype.itemsize} for {width}x{height} {pixel_type}"
            )
        samples = np.frombuffer(raw, dtype=dtype, count=count)
        values = samples.reshape(height, width).astype(np.float64)
        return cls(width=width, height=height, values=values, raw=bytes(raw))

    @classmethod
    def from_values(cls, values: np.ndarray, pixel_type: str) -> PlaneTile:
        """Build a PlaneTile from a [y, x] sample array."""
        dtype = pixel_dtype(pixel_type)
        height, width = values.shape
        raw = np.ascontiguousarray(values).astype(dtype).tobytes()
        return cls(
            width=width,
            height=height,
            values=np.asarray(values, dtype=np.float64),
            raw=raw,
        )


@dataclass(frozen=True)
class PlaneInfo:
    """Acquisition metadata for a single plane.

    Attributes:
        the_c: Channel index.
        the_z: Focal plane index.
        the_t: Timepoint index.
        delta_t: Time since acquisition start, in seconds.
        exposure_time: Exposure time, in seconds.
        position_x: Stage X position.
        position_y: Stage Y position.
        position_z: Stage Z position.
    """

    the_c: int
    the_z: int
    the_t: int
    delta_t: float | None = None
    exposure_time: float | None = None
    position_x: float | None = None
    position_y: float | None = None
    position_z: float | None = None


class RawDataSource(Protocol):
    """Protocol for a raw-data access handle bound to one pixel set."""

    def get_tile(
        self, z: int, t: int, c: int, x: int, y: int, width: int, height: int
    ) -> PlaneTile:
        """Fetch a rectangular tile of the plane at (z, t, c).

        Raises:
            DataSourceError: If the remote service fails the request.
        """
        ...

    def close(self) -> None:
        """Release the handle and its remote resources."""
        ...


class RawDataClient(Protocol):
    """Protocol for clients able to open raw-data access handles."""

    def create_raw_data_source(self, pixels_id: int) -> RawDataSource:
        """Open a raw-data access handle for a pixel set.

        Raises:
            ResourceAcquisitionError: If the handle cannot be created.
        """
        ...


class PlaneInfoClient(Protocol):
    """Protocol for clients able to list plane acquisition metadata."""

    def get_plane_infos(self, pixels_id: int) -> list[PlaneInfo]:
        """Return the acquisition metadata of every plane of a pixel set."""
        ...
