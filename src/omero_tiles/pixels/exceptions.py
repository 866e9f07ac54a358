"""Custom exceptions for pixel retrieval.

These exceptions wrap low-level errors raised by the remote raw-data
service with the pixel set, plane and tile that were being read.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from omero_tiles.pixels.coordinates import Coordinates


class PixelsError(Exception):
    """Base exception for all pixel retrieval errors."""

    def __init__(self, message: str, pixels_id: int | None = None) -> None:
        """Initialize pixels error with optional pixel set context.

        Args:
            message: Human-readable error description.
            pixels_id: ID of the remote pixel set involved.
        """
        self.pixels_id = pixels_id
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with pixel set context if available."""
        if self.pixels_id is not None:
            return f"{self.message} (pixels_id: {self.pixels_id})"
        return self.message


class ResourceAcquisitionError(PixelsError):
    """Raised when the raw-data access handle cannot be created.

    This error is raised when:
    - The client cannot create a raw-data service for the pixel set
    - The remote service is unavailable
    """

    pass


class DataSourceError(PixelsError):
    """Raised by raw-data sources when a single tile request fails."""

    pass


class AccessError(PixelsError):
    """Raised when fetching a tile of a plane fails.

    The first failing tile aborts the whole retrieval; no partial
    result is returned.
    """

    def __init__(
        self,
        message: str,
        pixels_id: int | None = None,
        *,
        position: Coordinates | None = None,
        origin: tuple[int, int] | None = None,
        size: tuple[int, int] | None = None,
    ) -> None:
        """Initialize access error with tile context.

        Args:
            message: Human-readable error description.
            pixels_id: ID of the remote pixel set.
            position: Plane position (c, z, t) and requested (x, y) origin.
            origin: Absolute (x, y) origin of the failing tile.
            size: (width, height) of the failing tile.
        """
        self.position = position
        self.origin = origin
        self.size = size
        super().__init__(message, pixels_id)

    def _format_message(self) -> str:
        """Format error message with full tile context."""
        parts = [self.message]
        if self.pixels_id is not None:
            parts.append(f"pixels_id={self.pixels_id}")
        if self.position is not None:
            p = self.position
            parts.append(f"plane=(c={p.c}, z={p.z}, t={p.t})")
        if self.origin is not None:
            parts.append(f"origin={self.origin}")
        if self.size is not None:
            parts.append(f"size={self.size}")

        if len(parts) == 1:
            return parts[0]
        return f"{parts[0]} ({', '.join(parts[1:])})"
