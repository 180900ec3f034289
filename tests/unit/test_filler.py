"""
Tests for the windowed fill: the per-block operation, the sequential
reference and the parallel driver.
"""

import numpy as np
import pytest

from grid_taskr import (
    BlockAlignmentError,
    BlockBoundsError,
    BlockCoordinate,
    FillConfig,
    FillEmitter,
    GridShapeError,
    WindowedArrayFiller,
    block_coordinates,
    fill_block,
    fill_sequential,
)


class TestFillBlock:
    """fill_block on in-process arrays and on shared handles."""

    def test_copies_only_its_block(self, rng):
        source = rng.random((8, 8))
        target = np.zeros((8, 8))

        fill_block(source, target, 4, BlockCoordinate(0, 4))

        assert np.array_equal(target[0:4, 4:8], source[0:4, 4:8])
        target[0:4, 4:8] = 0
        assert not target.any()

    def test_returns_coordinate(self, rng):
        source = rng.random((4, 4))
        assert fill_block(source, np.zeros((4, 4)), 2, (2, 0)) == BlockCoordinate(2, 0)

    def test_idempotent(self, rng):
        source = rng.random((8, 8))
        once = np.zeros((8, 8))
        twice = np.zeros((8, 8))

        fill_block(source, once, 4, (4, 0))
        fill_block(source, twice, 4, (4, 0))
        fill_block(source, twice, 4, (4, 0))

        assert np.array_equal(once, twice)

    def test_out_of_bounds_block_fails_before_writing(self, rng):
        source = rng.random((10, 10))
        target = np.zeros((10, 10))

        with pytest.raises(BlockBoundsError):
            fill_block(source, target, 4, (8, 8))
        assert not target.any()

    def test_misaligned_block(self, rng):
        with pytest.raises(BlockBoundsError, match="misaligned"):
            fill_block(rng.random((8, 8)), np.zeros((8, 8)), 4, (2, 0))

    def test_shape_mismatch(self, rng):
        with pytest.raises(GridShapeError):
            fill_block(rng.random((8, 8)), np.zeros((4, 4)), 4, (0, 0))

    def test_through_shared_handles(self, shared_pair):
        source, target = shared_pair

        for coord in block_coordinates(8, 4):
            fill_block(source.handle, target.handle, 4, coord)

        assert np.array_equal(target.array, source.array)


class TestFillSequential:
    """The single-threaded reference fill."""

    @pytest.mark.parametrize("size,block_size", [(1, 1), (8, 4), (9, 3), (100, 4), (64, 64)])
    def test_matches_source(self, rng, size, block_size):
        source = rng.random((size, size))
        target = np.zeros_like(source)

        count = fill_sequential(source, target, block_size)

        assert count == (size // block_size) ** 2
        assert np.array_equal(target, source)

    def test_does_not_touch_source(self, rng):
        source = rng.random((8, 8))
        before = source.copy()
        fill_sequential(source, np.zeros((8, 8)), 2)
        assert np.array_equal(source, before)

    def test_rejects_non_dividing_block(self, rng):
        with pytest.raises(BlockAlignmentError):
            fill_sequential(rng.random((10, 10)), np.zeros((10, 10)), 4)

    def test_rejects_non_square(self):
        with pytest.raises(GridShapeError, match="square"):
            fill_sequential(np.ones((4, 8)), np.zeros((4, 8)), 4)


class TestWindowedArrayFiller:
    """The fill-and-verify driver."""

    def test_eight_by_four(self):
        filler = WindowedArrayFiller(FillConfig(size=8, block_size=4, max_workers=2, executor_type="thread"))

        with filler:
            filler.setup()
            assert [tuple(c) for c in filler.coordinates] == [(0, 0), (0, 4), (4, 0), (4, 4)]
            filler.fill()
            assert filler.verify()
            assert np.array_equal(filler.target.array, filler.source.array)

    @pytest.mark.parametrize("max_workers", [1, 4, 32])
    def test_result_independent_of_pool_size(self, max_workers):
        config = FillConfig(size=100, block_size=4, max_workers=max_workers, seed=42, timeout=300)

        result = WindowedArrayFiller(config).run()

        assert result.matches
        assert result.block_count == 625
        assert result.max_workers == max_workers
        assert result.executor_type == "process"

    @pytest.mark.parametrize("executor_type", ["thread", "serial"])
    def test_other_executors(self, executor_type):
        config = FillConfig(size=48, block_size=8, max_workers=4, executor_type=executor_type)
        assert WindowedArrayFiller(config).run()

    def test_explicit_source(self):
        source = np.arange(64, dtype=np.float64).reshape(8, 8)
        filler = WindowedArrayFiller(FillConfig(size=8, block_size=2, executor_type="serial"))

        with filler:
            filler.setup(source)
            filler.fill()
            assert np.array_equal(filler.target.array, source)

    def test_seed_is_reproducible(self):
        a = WindowedArrayFiller(FillConfig(size=8, block_size=4, seed=7)).generate_source()
        b = WindowedArrayFiller(FillConfig(size=8, block_size=4, seed=7)).generate_source()
        c = WindowedArrayFiller(FillConfig(size=8, block_size=4, seed=8)).generate_source()
        assert np.array_equal(a, b)
        assert not np.array_equal(a, c)

    def test_source_is_read_only(self):
        with WindowedArrayFiller(FillConfig(size=8, block_size=4)) as filler:
            filler.setup()
            with pytest.raises(ValueError):
                filler.source.array[0, 0] = 1.0

    def test_non_dividing_block_rejected_at_setup(self):
        with pytest.raises(BlockAlignmentError):
            WindowedArrayFiller(FillConfig(size=10, block_size=4))

    def test_source_shape_mismatch(self):
        filler = WindowedArrayFiller(FillConfig(size=8, block_size=4))
        with pytest.raises(GridShapeError):
            filler.setup(np.zeros((4, 4)))
        assert filler.source is None and filler.target is None

    def test_verify_detects_missing_block(self):
        with WindowedArrayFiller(FillConfig(size=8, block_size=4, executor_type="serial")) as filler:
            filler.setup()
            for coord in filler.coordinates[:-1]:
                filler.retry_block(coord)
            assert not filler.verify()

            filler.retry_block(filler.coordinates[-1])
            assert filler.verify()

    def test_fill_requires_setup(self):
        with pytest.raises(RuntimeError, match="setup"):
            WindowedArrayFiller(FillConfig(size=8, block_size=4)).fill()

    def test_setup_twice(self):
        with WindowedArrayFiller(FillConfig(size=8, block_size=4)) as filler:
            filler.setup()
            with pytest.raises(RuntimeError, match="already"):
                filler.setup()

    def test_run_releases_grids(self):
        filler = WindowedArrayFiller(FillConfig(size=8, block_size=4, executor_type="serial"))
        filler.run()
        assert filler.source is None and filler.target is None

    def test_events(self):
        events = []
        emitter = FillEmitter()
        emitter.on("fill_started", lambda count, workers: events.append(("started", count, workers)))
        emitter.on("block_completed", lambda coord: events.append(("block", tuple(coord))))
        emitter.on("fill_finished", lambda result: events.append(("finished", result.matches)))

        config = FillConfig(size=8, block_size=4, max_workers=1, executor_type="serial")
        WindowedArrayFiller(config, emitter=emitter).run()

        assert events[0] == ("started", 4, 1)
        assert [e[1] for e in events[1:5]] == [(0, 0), (0, 4), (4, 0), (4, 4)]
        assert events[-1] == ("finished", True)
