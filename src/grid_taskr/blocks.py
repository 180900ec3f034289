"""Block coordinates and the square tiling of a grid."""

import dataclasses
import typing

import numpy as np

from .exceptions import BlockAlignmentError, BlockBoundsError, PartitionError
from .helpers import get_logger

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True, order=True)
class BlockCoordinate:
    """Top-left (row, col) index of a square block."""

    row: int
    col: int

    def __iter__(self):
        yield self.row
        yield self.col

    def __str__(self):
        return f"({self.row}, {self.col})"

    def window(self, block_size: int) -> tuple[slice, slice]:
        """Row and column slices covered by this block."""
        return (
            slice(self.row, self.row + block_size),
            slice(self.col, self.col + block_size),
        )

    def cells(self, block_size: int) -> typing.Iterator[tuple[int, int]]:
        """Every (i, j) index pair inside the block."""
        for i in range(self.row, self.row + block_size):
            for j in range(self.col, self.col + block_size):
                yield i, j

    def validate(self, block_size: int, shape: tuple[int, ...]) -> None:
        """
        Raise BlockBoundsError unless the whole block lies inside ``shape``
        and both corners are multiples of ``block_size``.
        """
        if block_size < 1:
            raise ValueError("block_size must be greater than 0")
        rows, cols = shape
        if self.row < 0 or self.col < 0:
            raise BlockBoundsError(self, block_size, shape, "negative")
        if self.row % block_size or self.col % block_size:
            raise BlockBoundsError(self, block_size, shape, "misaligned")
        if self.row + block_size > rows or self.col + block_size > cols:
            raise BlockBoundsError(self, block_size, shape, "out of bounds")


def as_coordinate(value) -> BlockCoordinate:
    """Accept a BlockCoordinate or any (row, col) pair."""
    if isinstance(value, BlockCoordinate):
        return value
    row, col = value
    return BlockCoordinate(int(row), int(col))


def check_block_size(size: int, block_size: int) -> None:
    """Fail fast unless ``block_size`` tiles a ``size`` x ``size`` grid exactly."""
    if size < 1:
        raise ValueError("grid size must be greater than 0")
    if block_size < 1:
        raise ValueError("block_size must be greater than 0")
    if size % block_size:
        raise BlockAlignmentError(size, block_size)


def block_coordinates(
    size: int, block_size: int, strict: bool = True
) -> typing.Iterator[BlockCoordinate]:
    """
    Yield the top-left corner of every block, row-major, striding both axes
    by ``block_size`` from 0 to ``size``.

    With ``strict`` (the default) a block size that does not divide the grid
    is rejected up front. With ``strict=False`` the overhanging edge blocks
    are yielded as-is and will be rejected by ``BlockCoordinate.validate``.

    >>> [tuple(c) for c in block_coordinates(8, 4)]
    [(0, 0), (0, 4), (4, 0), (4, 4)]
    """
    if strict:
        check_block_size(size, block_size)
    elif block_size < 1:
        raise ValueError("block_size must be greater than 0")

    for row in range(0, size, block_size):
        for col in range(0, size, block_size):
            logger.debug("Block %s: rows [%d-%d) cols [%d-%d)",
                         (row, col), row, row + block_size, col, col + block_size)
            yield BlockCoordinate(row, col)


def check_partition(
    coords: typing.Iterable[BlockCoordinate], size: int, block_size: int
) -> None:
    """
    Assert that ``coords`` tile the ``size`` x ``size`` index space with no
    overlap and no gaps. Raises PartitionError naming the first offending cell.
    """
    coverage = np.zeros((size, size), dtype=np.int32)
    for coord in map(as_coordinate, coords):
        try:
            coord.validate(block_size, (size, size))
        except BlockBoundsError as e:
            raise PartitionError(str(e)) from e
        coverage[coord.window(block_size)] += 1

    overlapping = np.argwhere(coverage > 1)
    if len(overlapping):
        i, j = overlapping[0]
        raise PartitionError(
            f"cell ({i}, {j}) is covered by {coverage[i, j]} blocks "
            f"({len(overlapping)} overlapping cells)"
        )

    uncovered = np.argwhere(coverage == 0)
    if len(uncovered):
        i, j = uncovered[0]
        raise PartitionError(
            f"cell ({i}, {j}) is not covered by any block "
            f"({len(uncovered)} uncovered cells)"
        )
