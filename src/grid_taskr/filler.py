"""
Windowed array filler.

Copies a source grid into a shared target grid one square block at a time,
with the blocks spread over a worker pool, and checks the parallel result
against the source.
"""

import dataclasses
import time
from typing import Optional, Union

import numpy as np

from .blocks import BlockCoordinate, as_coordinate, block_coordinates, check_partition
from .config import FillConfig
from .exceptions import GridShapeError
from .executor import BlockExecutor
from .grid import GridHandle, SharedGrid
from .helpers import get_logger
from .protocols import FillEmitter
from .utils import log_execution_time

logger = get_logger(__name__)

GridLike = Union[GridHandle, np.ndarray]


def _check_same_grid(source_shape: tuple, target_shape: tuple) -> None:
    # takes shapes, not arrays: a traceback must not pin views of a mapping
    if source_shape != target_shape:
        raise GridShapeError(
            f"source grid shape {source_shape} does not match target grid shape {target_shape}"
        )
    if len(source_shape) != 2 or source_shape[0] != source_shape[1]:
        raise GridShapeError(f"grids must be square, got shape {source_shape}")


def fill_block(
    source: GridLike, target: GridLike, block_size: int, coord
) -> BlockCoordinate:
    """
    Copy one ``block_size`` x ``block_size`` block from ``source`` into ``target``.

    ``source`` and ``target`` are either numpy arrays (same process) or
    GridHandles, in which case the shared segments are attached for the
    duration of the call. Only cells inside the block are written.

    Raises BlockBoundsError, before writing anything, when the block is
    misaligned or does not fit inside the grid.
    """
    coord = as_coordinate(coord)
    source_shm = target_shm = None
    try:
        if isinstance(source, GridHandle):
            source_shm, source = source.open(writeable=False)
        if isinstance(target, GridHandle):
            target_shm, target = target.open()

        _check_same_grid(source.shape, target.shape)
        coord.validate(block_size, target.shape)
        rows, cols = coord.window(block_size)
        target[rows, cols] = source[rows, cols]
    finally:
        # Delete the views before closing the shared memory
        del source, target
        for shm in (source_shm, target_shm):
            if shm is not None:
                shm.close()
    return coord


def fill_sequential(source: np.ndarray, target: np.ndarray, block_size: int) -> int:
    """
    Reference fill: visit every block in row-major order in this thread.

    Uses the same non-overlapping windows as the parallel fill, so the two
    must produce identical targets. Returns the number of blocks filled.
    """
    _check_same_grid(source.shape, target.shape)
    count = 0
    for coord in block_coordinates(source.shape[0], block_size):
        fill_block(source, target, block_size, coord)
        count += 1
    return count


@dataclasses.dataclass(frozen=True)
class FillResult:
    """Outcome of one fill-and-verify run."""

    matches: bool
    size: int
    block_size: int
    block_count: int
    max_workers: int
    executor_type: str
    elapsed: float

    def __bool__(self):
        return self.matches


class WindowedArrayFiller:
    """
    Driver for the windowed fill.

    ``run()`` performs the whole cycle: allocate the shared source and
    target grids, enumerate and check the blocks, dispatch them over a
    BlockExecutor, compare target to source and release the grids.

    The steps are also available individually for callers that want to
    inspect the grids before they are released:

        with WindowedArrayFiller(FillConfig(size=8, block_size=4)) as filler:
            filler.setup()
            filler.fill()
            assert filler.verify()
            snapshot = filler.target.array.copy()
    """

    def __init__(self, config: Optional[FillConfig] = None, emitter: Optional[FillEmitter] = None):
        self.config = config or FillConfig()
        self.emitter = emitter if emitter is not None else FillEmitter()
        self.source: Optional[SharedGrid] = None
        self.target: Optional[SharedGrid] = None
        self._coords: list[BlockCoordinate] = []

    def generate_source(self) -> np.ndarray:
        """N x N uniform random values, reproducible for a given seed."""
        rng = np.random.default_rng(self.config.seed)
        size = self.config.size
        return rng.random((size, size)).astype(self.config.dtype)

    def setup(self, source: Optional[np.ndarray] = None) -> None:
        """Allocate the shared source (random unless given) and a zeroed target."""
        if self.source is not None:
            raise RuntimeError("filler is already set up")

        size = self.config.size
        if source is None:
            source = self.generate_source()
        source = np.asarray(source, dtype=self.config.dtype)
        if source.shape != (size, size):
            raise GridShapeError(
                f"source grid shape {source.shape} does not match configured size ({size}, {size})"
            )

        try:
            self.source = SharedGrid.from_array(source)
            self.source.freeze()
            self.target = SharedGrid(self.source.shape, dtype=self.source.dtype)
            self.source.check_compatible(self.target)
        except BaseException:
            self.close()
            raise

        self._coords = list(block_coordinates(size, self.config.block_size))
        if self.config.check_partition:
            check_partition(self._coords, size, self.config.block_size)
        logger.info(
            "Prepared %d blocks of %dx%d over a %dx%d grid",
            len(self._coords),
            self.config.block_size,
            self.config.block_size,
            size,
            size,
        )

    @property
    def coordinates(self) -> list[BlockCoordinate]:
        return list(self._coords)

    def _require_setup(self):
        if self.source is None or self.target is None:
            raise RuntimeError("filler is not set up; call setup() first")

    @log_execution_time
    def fill(self) -> list[BlockCoordinate]:
        """Dispatch every block and wait for all of them."""
        self._require_setup()
        config = self.config
        self.emitter.emit_fill_started(len(self._coords), config.max_workers)

        if config.executor_type == "serial":
            for coord in self._coords:
                try:
                    fill_block(self.source.array, self.target.array, config.block_size, coord)
                except Exception as e:
                    self.emitter.emit_block_failed(coord, e)
                    raise
                self.emitter.emit_block_completed(coord)
            return self.coordinates

        logger.info(
            "Dispatching %d blocks to %d %s workers",
            len(self._coords),
            config.max_workers,
            config.executor_type,
        )
        with BlockExecutor(
            max_workers=config.max_workers,
            executor_type=config.executor_type,
            emitter=self.emitter,
        ) as executor:
            return executor.submit_blocks(
                fill_block,
                self._coords,
                self.source.handle,
                self.target.handle,
                config.block_size,
                timeout=config.timeout,
            )

    def retry_block(self, coord) -> BlockCoordinate:
        """Re-run a single block in this process. Blocks are idempotent."""
        self._require_setup()
        coord = fill_block(self.source.array, self.target.array, self.config.block_size, coord)
        self.emitter.emit_block_completed(coord)
        return coord

    def verify(self) -> bool:
        """Exact element-wise comparison of target against source."""
        self._require_setup()
        matches = bool(np.array_equal(self.target.array, self.source.array))
        if matches:
            logger.info("Target grid matches source grid")
        else:
            mismatched = int(np.count_nonzero(self.target.array != self.source.array))
            logger.warning("Target grid differs from source grid in %d cells", mismatched)
        return matches

    def run(self, source: Optional[np.ndarray] = None) -> FillResult:
        """Set up, fill, verify and release the grids."""
        start = time.perf_counter()
        try:
            self.setup(source)
            self.fill()
            matches = self.verify()
        finally:
            self.close()

        result = FillResult(
            matches=matches,
            size=self.config.size,
            block_size=self.config.block_size,
            block_count=len(self._coords),
            max_workers=self.config.max_workers,
            executor_type=self.config.executor_type,
            elapsed=time.perf_counter() - start,
        )
        self.emitter.emit_fill_finished(result)
        return result

    def close(self) -> None:
        """Release both shared grids."""
        for grid in (self.target, self.source):
            if grid is not None:
                grid.close()
        self.source = None
        self.target = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
