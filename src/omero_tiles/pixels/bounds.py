"""Range clamping for region requests.

Callers describe a region by optional inclusive [lo, hi] ranges per axis.
The resolver never rejects a range: an invalid lower bound becomes 0 and
an invalid upper bound becomes the last index of the axis.
"""

from __future__ import annotations

from collections.abc import Sequence

from omero_tiles.pixels.coordinates import Bounds, Coordinates

AxisRange = Sequence[int] | None


def resolve_range(bounds: AxisRange, extent: int) -> tuple[int, int]:
    """Clamp an inclusive [lo, hi] range against an axis extent.

    Args:
        bounds: [lo, hi] pair, or None (or fewer than two items) for the
            whole axis. Extra items are ignored.
        extent: Number of indices along the axis (>= 1).

    Returns:
        (lo, hi) with 0 <= lo <= hi <= extent - 1.

    Example:
        >>> resolve_range([-5, 3], 10)
        (0, 3)
        >>> resolve_range([4, 2], 10)
        (4, 9)
    """
    lo, hi = 0, extent - 1
    if bounds is not None and len(bounds) > 1:
        lo = bounds[0] if 0 <= bounds[0] <= hi else 0
        hi = bounds[1] if lo <= bounds[1] <= hi else hi
    return lo, hi


class BoundsResolver:
    """Resolves per-axis ranges into Bounds within a pixel set's extents.

    The resolver is stateless; resolving the same ranges against the same
    extents always yields equal Bounds.
    """

    def resolve(
        self,
        x_range: AxisRange = None,
        y_range: AxisRange = None,
        c_range: AxisRange = None,
        z_range: AxisRange = None,
        t_range: AxisRange = None,
        *,
        extents: Coordinates,
    ) -> Bounds:
        """Clamp ranges on all five axes and build Bounds.

        Args:
            x_range: Optional [lo, hi] column range.
            y_range: Optional [lo, hi] row range.
            c_range: Optional [lo, hi] channel range.
            z_range: Optional [lo, hi] focal plane range.
            t_range: Optional [lo, hi] timepoint range.
            extents: Sizes of the pixel set along (x, y, c, z, t).

        Returns:
            Bounds with 1 <= size <= extent on every axis.
        """
        ranges = (x_range, y_range, c_range, z_range, t_range)
        limits = [
            resolve_range(r, extent) for r, extent in zip(ranges, extents.to_tuple())
        ]
        start = Coordinates.from_tuple(tuple(lo for lo, _ in limits))  # type: ignore[arg-type]
        end = Coordinates.from_tuple(tuple(hi for _, hi in limits))  # type: ignore[arg-type]
        return Bounds.from_corners(start, end)
