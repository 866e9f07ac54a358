"""Scoped acquisition of raw-data access handles.

Opening a raw-data service on the server is expensive, so a handle may be
shared by consecutive retrievals. Whichever scope creates the handle owns
it and closes it on exit; nested scopes reuse the cached handle and leave
it open.

Example:
    scope = HandleScope(pixels_id=42)

    with scope.acquire(client) as outer:      # creates, owns
        with scope.acquire(client) as inner:  # reuses, does not own
            inner.handle.get_tile(0, 0, 0, 0, 0, 512, 512)
    # handle closed here
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from omero_tiles.pixels.exceptions import ResourceAcquisitionError
from omero_tiles.pixels.types import RawDataClient, RawDataSource
from omero_tiles.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AccessGuard:
    """A handle lent to one scope.

    Attributes:
        handle: The open raw-data access handle.
        owned: True if this scope created the handle and will close it.
    """

    handle: RawDataSource
    owned: bool


class HandleScope:
    """Caches at most one raw-data handle for a pixel set.

    Not safe for concurrent use: callers sharing a scope across threads
    must serialize access.
    """

    __slots__ = ("_handle", "_pixels_id")

    def __init__(self, pixels_id: int) -> None:
        self._pixels_id = pixels_id
        self._handle: RawDataSource | None = None

    @property
    def is_open(self) -> bool:
        """Return True while a handle is cached."""
        return self._handle is not None

    @contextmanager
    def acquire(self, client: RawDataClient) -> Iterator[AccessGuard]:
        """Lend a handle for the duration of a with-block.

        Args:
            client: Client used to create the handle if none is cached.

        Yields:
            AccessGuard for the cached or newly created handle.

        Raises:
            ResourceAcquisitionError: If the handle cannot be created.
        """
        if self._handle is not None:
            yield AccessGuard(self._handle, owned=False)
            return

        handle = self._create(client)
        self._handle = handle
        logger.debug("Opened raw data handle", pixels_id=self._pixels_id)
        try:
            yield AccessGuard(handle, owned=True)
        finally:
            self._handle = None
            self._release(handle)

    def _release(self, handle: RawDataSource) -> None:
        # A failed close must not replace the block's result or exception
        try:
            handle.close()
        except Exception as e:
            logger.warning(
                "Failed to close raw data handle",
                pixels_id=self._pixels_id,
                error=str(e),
            )
        else:
            logger.debug("Closed raw data handle", pixels_id=self._pixels_id)

    def _create(self, client: RawDataClient) -> RawDataSource:
        try:
            return client.create_raw_data_source(self._pixels_id)
        except ResourceAcquisitionError:
            raise
        except Exception as e:
            raise ResourceAcquisitionError(
                f"Cannot open raw data handle: {e}", self._pixels_id
            ) from e
