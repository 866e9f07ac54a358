"""Shared pytest fixtures and configuration."""

from __future__ import annotations

from collections.abc import Callable, Iterator

import numpy as np
import pytest

from omero_tiles.config import Settings
from omero_tiles.pixels import (
    DataSourceError,
    PixelsDescriptor,
    PlaneTile,
    ResourceAcquisitionError,
)
from omero_tiles.utils.logging import clear_correlation_context, configure_logging

SampleFn = Callable[[np.ndarray, np.ndarray, int, int, int], np.ndarray]


def encode_sample(
    x: np.ndarray, y: np.ndarray, z: int, t: int, c: int
) -> np.ndarray:
    """Deterministic sample value for a coordinate, exact in float64."""
    return (x + 1_000 * y + 1_000_000 * c + 10_000_000 * z + 100_000_000 * t).astype(
        np.float64
    )


def small_sample(x: np.ndarray, y: np.ndarray, z: int, t: int, c: int) -> np.ndarray:
    """Deterministic sample value that fits in uint16."""
    return ((x * 7 + y * 13 + c * 101 + z * 211 + t * 307) % 65536).astype(np.float64)


class SyntheticSource:
    """Raw-data source whose samples are computed from their coordinates.

    Records every tile request; can be told to fail the k-th request.
    """

    def __init__(
        self,
        fn: SampleFn = encode_sample,
        pixel_type: str = "double",
        fail_at: int | None = None,
    ) -> None:
        self.fn = fn
        self.pixel_type = pixel_type
        self.fail_at = fail_at
        self.calls: list[tuple[int, int, int, int, int, int, int]] = []
        self.closed = False

    def get_tile(
        self, z: int, t: int, c: int, x: int, y: int, width: int, height: int
    ) -> PlaneTile:
        if self.fail_at is not None and len(self.calls) == self.fail_at:
            self.calls.append((z, t, c, x, y, width, height))
            raise DataSourceError("simulated failure")
        self.calls.append((z, t, c, x, y, width, height))
        ys, xs = np.mgrid[y : y + height, x : x + width]
        return PlaneTile.from_values(self.fn(xs, ys, z, t, c), self.pixel_type)

    def close(self) -> None:
        self.closed = True


class FakeClient:
    """Raw-data client that hands out SyntheticSource handles."""

    def __init__(
        self,
        source_factory: Callable[[], SyntheticSource] = SyntheticSource,
        fail: bool = False,
    ) -> None:
        self.source_factory = source_factory
        self.fail = fail
        self.created: list[SyntheticSource] = []

    def create_raw_data_source(self, pixels_id: int) -> SyntheticSource:
        if self.fail:
            raise ResourceAcquisitionError("service unavailable", pixels_id)
        source = self.source_factory()
        self.created.append(source)
        return source


@pytest.fixture(autouse=True)
def reset_logging_context() -> Iterator[None]:
    """Reset correlation context between tests."""
    clear_correlation_context()
    yield
    clear_correlation_context()


@pytest.fixture
def test_settings() -> Settings:
    """Create a Settings instance with test-safe defaults."""
    return Settings(
        OMERO_HOST="omero.example.org",
        OMERO_USER="tester",
        OMERO_PASSWORD="secret",
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
        _env_file=None,  # type: ignore[call-arg]
    )


@pytest.fixture
def configure_test_logging() -> Iterator[None]:
    """Configure logging for tests with console output."""
    configure_logging(level="DEBUG", log_format="console")
    yield


@pytest.fixture
def descriptor() -> PixelsDescriptor:
    """A small 5D pixel set: X=7, Y=5, C=3, Z=2, T=2."""
    return PixelsDescriptor(
        id=42,
        size_x=7,
        size_y=5,
        size_c=3,
        size_z=2,
        size_t=2,
        pixel_type="double",
    )


@pytest.fixture
def client() -> FakeClient:
    """A client serving synthetic float64 tiles."""
    return FakeClient()
