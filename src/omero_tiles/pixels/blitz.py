"""OMERO BlitzGateway adapter.

Implements the raw-data client and source protocols on top of an
omero-py ``BlitzGateway`` connection, reading tiles through the
server's RawPixelsStore service. omero-py is an optional dependency
(``pip install omero-tiles[omero]``) and is only imported by connect().
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from omero_tiles.config import Settings, settings
from omero_tiles.pixels.exceptions import (
    DataSourceError,
    PixelsError,
    ResourceAcquisitionError,
)
from omero_tiles.pixels.types import PixelsDescriptor, PlaneInfo, PlaneTile
from omero_tiles.utils.logging import get_logger

if TYPE_CHECKING:
    from omero.gateway import BlitzGateway

logger = get_logger(__name__)


def _unit_value(value: Any) -> float | None:
    """Unwrap an OMERO length/time (or plain number) into a float."""
    if value is None:
        return None
    if hasattr(value, "getValue"):
        value = value.getValue()
    return None if value is None else float(value)


def connect(config: Settings | None = None) -> BlitzGateway:
    """Open a BlitzGateway session from configuration.

    Args:
        config: Settings to read credentials from. Defaults to the
            module-level settings.

    Returns:
        A connected BlitzGateway.

    Raises:
        ConfigError: If host, user or password is not configured.
        ResourceAcquisitionError: If the server refuses the session.
    """
    config = config or settings
    host, user, password = config.require_omero_credentials()

    from omero.gateway import BlitzGateway  # noqa: PLC0415

    conn = BlitzGateway(user, password, host=host, port=config.OMERO_PORT, secure=True)
    if not conn.connect():
        raise ResourceAcquisitionError(f"Cannot connect to OMERO server {host}")
    if config.OMERO_GROUP_ID is not None:
        conn.SERVICE_OPTS.setOmeroGroup(config.OMERO_GROUP_ID)
    logger.info("Connected to OMERO", host=host, user=user)
    return conn


class BlitzRawDataSource:
    """Raw-data access handle backed by a RawPixelsStore service.

    Tiles arrive as big-endian bytes and are decoded according to the
    pixel set's type.
    """

    __slots__ = ("_pixel_type", "_pixels_id", "_store")

    def __init__(self, store: Any, pixels_id: int, pixel_type: str) -> None:
        self._store = store
        self._pixels_id = pixels_id
        self._pixel_type = pixel_type

    def get_tile(
        self, z: int, t: int, c: int, x: int, y: int, width: int, height: int
    ) -> PlaneTile:
        """Fetch a tile of the plane at (z, t, c).

        Raises:
            DataSourceError: If the server fails the request or returns a
                payload that cannot be decoded.
        """
        try:
            raw = self._store.getTile(z, c, t, x, y, width, height)
            return PlaneTile.from_bytes(raw, width, height, self._pixel_type)
        except Exception as e:
            raise DataSourceError(f"getTile failed: {e}", self._pixels_id) from e

    def close(self) -> None:
        """Close the underlying RawPixelsStore."""
        self._store.close()


class BlitzClient:
    """Adapts a BlitzGateway connection to the raw-data client protocols.

    Example:
        conn = connect()
        client = BlitzClient(conn)
        pixels = Pixels(client.get_pixels(image_id=101))
        data = pixels.get_all_pixels(client, c_range=[0, 0])
    """

    __slots__ = ("_conn", "_pixel_types")

    def __init__(self, conn: BlitzGateway) -> None:
        self._conn = conn
        self._pixel_types: dict[int, str] = {}

    @property
    def conn(self) -> BlitzGateway:
        return self._conn

    def get_pixels(self, image_id: int) -> PixelsDescriptor:
        """Describe the primary pixel set of an image.

        Raises:
            PixelsError: If the image does not exist or is not readable.
        """
        image = self._conn.getObject("Image", image_id)
        if image is None:
            raise PixelsError(f"Image {image_id} not found")

        pixels = image.getPrimaryPixels()
        pixel_type = str(pixels.getPixelsType().getValue())
        descriptor = PixelsDescriptor(
            id=int(pixels.getId()),
            size_x=image.getSizeX(),
            size_y=image.getSizeY(),
            size_c=image.getSizeC(),
            size_z=image.getSizeZ(),
            size_t=image.getSizeT(),
            pixel_type=pixel_type,
            pixel_size_x=_unit_value(image.getPixelSizeX()),
            pixel_size_y=_unit_value(image.getPixelSizeY()),
            pixel_size_z=_unit_value(image.getPixelSizeZ()),
            time_increment=_unit_value(pixels.getTimeIncrement()),
        )
        self._pixel_types[descriptor.id] = pixel_type
        return descriptor

    def create_raw_data_source(self, pixels_id: int) -> BlitzRawDataSource:
        """Open a RawPixelsStore bound to a pixel set.

        Raises:
            ResourceAcquisitionError: If the store cannot be created or bound.
        """
        pixel_type = self._pixel_type(pixels_id)
        try:
            store = self._conn.c.sf.createRawPixelsStore()
        except Exception as e:
            raise ResourceAcquisitionError(
                f"Cannot create RawPixelsStore: {e}", pixels_id
            ) from e

        try:
            # True = bypass the original-file cache
            store.setPixelsId(pixels_id, True)
        except Exception as e:
            store.close()
            raise ResourceAcquisitionError(
                f"Cannot bind RawPixelsStore: {e}", pixels_id
            ) from e
        return BlitzRawDataSource(store, pixels_id, pixel_type)

    def get_plane_infos(self, pixels_id: int) -> list[PlaneInfo]:
        """List acquisition metadata for every plane of a pixel set."""
        pixels = self._conn.getObject("Pixels", pixels_id)
        if pixels is None:
            raise PixelsError("Pixel set not found", pixels_id)
        return [
            PlaneInfo(
                the_c=plane.getTheC(),
                the_z=plane.getTheZ(),
                the_t=plane.getTheT(),
                delta_t=_unit_value(plane.getDeltaT()),
                exposure_time=_unit_value(plane.getExposureTime()),
                position_x=_unit_value(plane.getPositionX()),
                position_y=_unit_value(plane.getPositionY()),
                position_z=_unit_value(plane.getPositionZ()),
            )
            for plane in pixels.copyPlaneInfo()
        ]

    def _pixel_type(self, pixels_id: int) -> str:
        cached = self._pixel_types.get(pixels_id)
        if cached is not None:
            return cached
        pixels = self._conn.getObject("Pixels", pixels_id)
        if pixels is None:
            raise ResourceAcquisitionError("Pixel set not found", pixels_id)
        pixel_type = str(pixels.getPixelsType().getValue())
        self._pixel_types[pixels_id] = pixel_type
        return pixel_type
