"""Unit tests for tiled plane retrieval."""

from __future__ import annotations

import numpy as np
import pytest
from conftest import SyntheticSource, encode_sample, small_sample
from hypothesis import given, settings
from hypothesis import strategies as st

from omero_tiles.pixels import AccessError, Coordinates, PlaneTile, TileFetcher


def _position(x: int = 0, y: int = 0, c: int = 0, z: int = 0, t: int = 0) -> Coordinates:
    return Coordinates(x=x, y=y, c=c, z=z, t=t)


class TestTileFetcherInit:
    """Tests for TileFetcher construction."""

    def test_default_edge_from_settings(self) -> None:
        assert TileFetcher().max_tile_edge == 5000

    def test_custom_edge(self) -> None:
        assert TileFetcher(max_tile_edge=256).max_tile_edge == 256

    @pytest.mark.parametrize("edge", [0, -1])
    def test_non_positive_edge_rejected(self, edge: int) -> None:
        with pytest.raises(ValueError, match="max_tile_edge must be positive"):
            TileFetcher(max_tile_edge=edge)


class TestIterTiles:
    """Tests for TileFetcher.iter_tiles decomposition."""

    def test_exact_edge_is_one_tile(self) -> None:
        specs = list(TileFetcher(max_tile_edge=100).iter_tiles(0, 0, 100, 100))
        assert len(specs) == 1
        assert (specs[0].width, specs[0].height) == (100, 100)

    def test_one_past_edge_splits(self) -> None:
        specs = list(TileFetcher(max_tile_edge=100).iter_tiles(0, 0, 101, 100))
        assert len(specs) == 2
        assert [s.width for s in specs] == [100, 1]

    def test_long_row(self) -> None:
        specs = list(TileFetcher(max_tile_edge=5000).iter_tiles(0, 0, 12000, 1))
        assert [(s.x, s.width) for s in specs] == [(0, 5000), (5000, 5000), (10000, 2000)]
        assert all(s.height == 1 for s in specs)

    def test_x_chunk_outer_y_chunk_inner(self) -> None:
        specs = list(TileFetcher(max_tile_edge=2).iter_tiles(10, 20, 3, 3))
        assert [(s.offset_x, s.offset_y) for s in specs] == [
            (0, 0),
            (0, 2),
            (2, 0),
            (2, 2),
        ]
        assert [(s.x, s.y) for s in specs] == [(10, 20), (10, 22), (12, 20), (12, 22)]
        assert [(s.width, s.height) for s in specs] == [(2, 2), (2, 1), (1, 2), (1, 1)]

    @settings(max_examples=50, deadline=None)
    @given(
        st.integers(1, 300),
        st.integers(1, 300),
        st.integers(1, 120),
    )
    def test_tiles_cover_rectangle_exactly_once(
        self, width: int, height: int, edge: int
    ) -> None:
        covered = np.zeros((height, width), dtype=np.int32)
        for spec in TileFetcher(max_tile_edge=edge).iter_tiles(0, 0, width, height):
            assert 1 <= spec.width <= edge
            assert 1 <= spec.height <= edge
            covered[
                spec.offset_y : spec.offset_y + spec.height,
                spec.offset_x : spec.offset_x + spec.width,
            ] += 1
        assert (covered == 1).all()


class TestFetchPlane:
    """Tests for TileFetcher.fetch_plane."""

    def test_single_tile_matches_source(self) -> None:
        source = SyntheticSource()
        plane = TileFetcher(max_tile_edge=64).fetch_plane(
            source, _position(x=3, y=4, c=1, z=2, t=0), 10, 6
        )
        ys, xs = np.mgrid[4:10, 3:13]
        np.testing.assert_array_equal(plane, encode_sample(xs, ys, 2, 0, 1))
        assert source.calls == [(2, 0, 1, 3, 4, 10, 6)]

    def test_multi_tile_stitching(self) -> None:
        source = SyntheticSource()
        plane = TileFetcher(max_tile_edge=4).fetch_plane(
            source, _position(x=1, y=2, c=0, z=1, t=1), 11, 9
        )
        ys, xs = np.mgrid[2:11, 1:12]
        assert plane.shape == (9, 11)
        np.testing.assert_array_equal(plane, encode_sample(xs, ys, 1, 1, 0))
        assert len(source.calls) == 3 * 3

    def test_long_row_issues_three_requests(self) -> None:
        source = SyntheticSource()
        plane = TileFetcher(max_tile_edge=5000).fetch_plane(
            source, _position(), 12000, 1
        )
        assert plane.shape == (1, 12000)
        assert [(call[3], call[5]) for call in source.calls] == [
            (0, 5000),
            (5000, 5000),
            (10000, 2000),
        ]
        np.testing.assert_array_equal(plane[0], np.arange(12000, dtype=np.float64))

    def test_request_argument_order(self) -> None:
        source = SyntheticSource()
        TileFetcher(max_tile_edge=10).fetch_plane(
            source, _position(x=5, y=6, c=2, z=3, t=4), 1, 1
        )
        # (z, t, c, x, y, width, height)
        assert source.calls == [(3, 4, 2, 5, 6, 1, 1)]

    def test_source_error_wrapped_as_access_error(self) -> None:
        source = SyntheticSource(fail_at=2)
        with pytest.raises(AccessError, match="Cannot read tile") as exc_info:
            TileFetcher(max_tile_edge=2).fetch_plane(
                source, _position(c=1), 4, 4, pixels_id=9
            )
        error = exc_info.value
        assert error.pixels_id == 9
        assert error.origin == (2, 0)
        assert error.size == (2, 2)
        assert error.position is not None
        assert error.position.c == 1
        assert len(source.calls) == 3

    def test_unexpected_error_wrapped_as_access_error(self) -> None:
        class BrokenSource(SyntheticSource):
            def get_tile(self, *args: int) -> PlaneTile:
                raise ConnectionError("socket closed")

        with pytest.raises(AccessError, match="socket closed") as exc_info:
            TileFetcher().fetch_plane(BrokenSource(), _position(), 2, 2)
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_undersized_tile_raises_access_error(self) -> None:
        class NarrowSource(SyntheticSource):
            def get_tile(
                self, z: int, t: int, c: int, x: int, y: int, width: int, height: int
            ) -> PlaneTile:
                return super().get_tile(z, t, c, x, y, width - 1, height)

        fetcher = TileFetcher()
        with pytest.raises(AccessError, match="got 3x4 samples, expected 4x4") as exc_info:
            fetcher.fetch_plane(NarrowSource(), _position(c=2), 4, 4, pixels_id=9)
        error = exc_info.value
        assert error.pixels_id == 9
        assert error.origin == (0, 0)
        assert error.size == (4, 4)


class TestFetchRawPlane:
    """Tests for TileFetcher.fetch_raw_plane."""

    def test_bytes_match_big_endian_samples(self) -> None:
        source = SyntheticSource(fn=small_sample, pixel_type="uint16")
        raw = TileFetcher(max_tile_edge=3).fetch_raw_plane(
            source, _position(x=2, y=1, c=1, z=0, t=1), 7, 5, bpp=2
        )
        ys, xs = np.mgrid[1:6, 2:9]
        expected = small_sample(xs, ys, 0, 1, 1).astype(">u2").tobytes()
        assert raw.dtype == np.uint8
        assert raw.shape == (7 * 5 * 2,)
        assert raw.tobytes() == expected

    def test_sample_offset(self) -> None:
        source = SyntheticSource(fn=small_sample, pixel_type="uint8")
        width, height = 9, 4
        raw = TileFetcher(max_tile_edge=4).fetch_raw_plane(
            source, _position(), width, height, bpp=1
        )
        for y in range(height):
            for x in range(width):
                expected = small_sample(np.array(x), np.array(y), 0, 0, 0)
                assert raw[y * width + x] == int(expected)

    def test_single_byte_bpp_on_wide_samples_keeps_leading_bytes(self) -> None:
        source = SyntheticSource(fn=small_sample, pixel_type="uint16")
        raw = TileFetcher(max_tile_edge=10).fetch_raw_plane(
            source, _position(), 2, 1, bpp=1
        )
        payload = small_sample(np.arange(2), np.zeros(2, dtype=int), 0, 0, 0)
        assert raw.tobytes() == payload.astype(">u2").tobytes()[:2]

    def test_short_payload_raises_access_error(self) -> None:
        source = SyntheticSource(fn=small_sample, pixel_type="uint8")
        with pytest.raises(AccessError, match="payload has 4 bytes, expected 8"):
            TileFetcher().fetch_raw_plane(source, _position(), 2, 2, bpp=2)

    @pytest.mark.parametrize("bpp", [0, -2])
    def test_non_positive_bpp_rejected(self, bpp: int) -> None:
        with pytest.raises(ValueError, match="bpp must be positive"):
            TileFetcher().fetch_raw_plane(SyntheticSource(), _position(), 2, 2, bpp)

    def test_source_error_aborts(self) -> None:
        source = SyntheticSource(pixel_type="uint8", fn=small_sample, fail_at=0)
        with pytest.raises(AccessError):
            TileFetcher().fetch_raw_plane(source, _position(), 2, 2, bpp=1)
