"""Coordinate primitives for 5D pixel sets.

This module provides immutable Pydantic models for points and
hyper-rectangles in pixel-index space. Axes are ordered (x, y, c, z, t),
matching the OMERO pixel set dimensions.
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, model_validator

AXES: tuple[str, ...] = ("x", "y", "c", "z", "t")


class Coordinates(BaseModel, frozen=True):
    """A point in 5D pixel-index space.

    Values are signed and only meaningful against the extents of a
    pixel set.

    Attributes:
        x: Column index.
        y: Row index.
        c: Channel index.
        z: Focal plane index.
        t: Timepoint index.
    """

    x: int
    y: int
    c: int
    z: int
    t: int

    def to_tuple(self) -> tuple[int, int, int, int, int]:
        """Convert to (x, y, c, z, t) tuple."""
        return (self.x, self.y, self.c, self.z, self.t)

    @classmethod
    def from_tuple(cls, coord: tuple[int, int, int, int, int]) -> Self:
        """Create Coordinates from (x, y, c, z, t) tuple."""
        x, y, c, z, t = coord
        return cls(x=x, y=y, c=c, z=z, t=t)


class Bounds(BaseModel, frozen=True):
    """An axis-aligned hyper-rectangle in 5D pixel-index space.

    Defined by an inclusive lower corner and a per-axis size. The upper
    corner is inclusive as well:

    - start: first index on each axis
    - end: start + size - 1 on each axis

    Attributes:
        start: Inclusive lower corner.
        size: Number of indices covered on each axis (>= 1).
    """

    start: Coordinates
    size: Coordinates

    @model_validator(mode="after")
    def _validate_size(self) -> Self:
        """Ensure every axis covers at least one index."""
        empty = [axis for axis in AXES if getattr(self.size, axis) < 1]
        if empty:
            raise ValueError(f"Bounds size must be >= 1 on axes: {', '.join(empty)}")
        return self

    @classmethod
    def from_corners(cls, start: Coordinates, end: Coordinates) -> Self:
        """Create Bounds spanning two inclusive corners.

        Args:
            start: Lower corner (inclusive).
            end: Upper corner (inclusive).

        Returns:
            Bounds with size = end - start + 1 on each axis.

        Raises:
            ValueError: If end precedes start on any axis.
        """
        size = Coordinates.from_tuple(
            tuple(e - s + 1 for s, e in zip(start.to_tuple(), end.to_tuple()))  # type: ignore[arg-type]
        )
        return cls(start=start, size=size)

    @property
    def end(self) -> Coordinates:
        """Return the inclusive upper corner."""
        return Coordinates.from_tuple(
            tuple(s + n - 1 for s, n in zip(self.start.to_tuple(), self.size.to_tuple()))  # type: ignore[arg-type]
        )

    @property
    def plane_count(self) -> int:
        """Return the number of (c, z, t) planes covered."""
        return self.size.c * self.size.z * self.size.t
