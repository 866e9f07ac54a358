"""Unit tests for pixel set and tile types."""

from __future__ import annotations

import numpy as np
import pytest

from omero_tiles.pixels import PIXEL_TYPES, Coordinates, PixelsDescriptor, PlaneTile
from omero_tiles.pixels.types import pixel_dtype


class TestPixelDtype:
    """Tests for pixel type lookup."""

    @pytest.mark.parametrize(
        ("pixel_type", "itemsize"),
        [
            ("int8", 1),
            ("uint8", 1),
            ("int16", 2),
            ("uint16", 2),
            ("int32", 4),
            ("uint32", 4),
            ("float", 4),
            ("double", 8),
        ],
    )
    def test_itemsize(self, pixel_type: str, itemsize: int) -> None:
        assert pixel_dtype(pixel_type).itemsize == itemsize

    def test_multi_byte_types_are_big_endian(self) -> None:
        for dtype in PIXEL_TYPES.values():
            assert dtype.itemsize == 1 or dtype.byteorder == ">"

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unsupported pixel type 'complex'"):
            pixel_dtype("complex")

    def test_bit_type_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unsupported pixel type 'bit'"):
            pixel_dtype("bit")


class TestPixelsDescriptor:
    """Tests for PixelsDescriptor."""

    def test_extents(self, descriptor: PixelsDescriptor) -> None:
        assert descriptor.extents == Coordinates(x=7, y=5, c=3, z=2, t=2)

    def test_bytes_per_pixel(self, descriptor: PixelsDescriptor) -> None:
        assert descriptor.bytes_per_pixel == 8

    def test_optional_physical_sizes_default_none(
        self, descriptor: PixelsDescriptor
    ) -> None:
        assert descriptor.pixel_size_x is None
        assert descriptor.time_increment is None


class TestPlaneTile:
    """Tests for PlaneTile decoding."""

    def test_from_bytes_uint16(self) -> None:
        raw = bytes([0x01, 0x02, 0x00, 0xFF, 0x10, 0x00, 0x00, 0x01])
        tile = PlaneTile.from_bytes(raw, width=2, height=2, pixel_type="uint16")
        assert tile.values.dtype == np.float64
        np.testing.assert_array_equal(tile.values, [[258.0, 255.0], [4096.0, 1.0]])
        assert tile.values[0, 1] == 255.0
        assert tile.values[1, 0] == 4096.0
        assert tile.raw[3] == 0xFF

    def test_from_bytes_signed(self) -> None:
        tile = PlaneTile.from_bytes(bytes([0xFF, 0xFE]), 1, 1, "int16")
        assert tile.values[0, 0] == -2.0

    def test_from_bytes_short_payload(self) -> None:
        with pytest.raises(ValueError, match="expected 8"):
            PlaneTile.from_bytes(bytes(6), 2, 2, "uint16")

    def test_from_values_encodes_big_endian(self) -> None:
        values = np.array([[1.0, 2.0, 3.0]])
        tile = PlaneTile.from_values(values, "uint16")
        assert (tile.width, tile.height) == (3, 1)
        assert tile.raw == bytes([0, 1, 0, 2, 0, 3])

    def test_from_values_then_bytes(self) -> None:
        values = np.arange(12, dtype=np.float64).reshape(3, 4) * 0.5
        tile = PlaneTile.from_values(values, "float")
        decoded = PlaneTile.from_bytes(tile.raw, 4, 3, "float")
        np.testing.assert_array_equal(decoded.values, values)
