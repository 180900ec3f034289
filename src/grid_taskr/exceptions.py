"""Exceptions raised by grid_taskr."""


class GridTaskrError(Exception):
    """Base class for all grid_taskr errors."""


class BlockBoundsError(GridTaskrError, IndexError):
    """A block coordinate is negative, misaligned, or runs past the grid edge."""

    def __init__(self, coord, block_size, shape, reason="out of bounds"):
        self.coord = coord
        self.block_size = block_size
        self.shape = tuple(shape)
        self.reason = reason
        super().__init__(
            f"block {tuple(coord)} of size {block_size} is {reason} "
            f"for grid of shape {self.shape}"
        )

    # raised inside pool workers, so it has to survive pickling
    def __reduce__(self):
        return type(self), (self.coord, self.block_size, self.shape, self.reason)


class BlockAlignmentError(GridTaskrError, ValueError):
    """The block size does not evenly divide the grid size."""

    def __init__(self, size, block_size):
        self.size = size
        self.block_size = block_size
        super().__init__(
            f"block size {block_size} does not evenly divide grid size {size}"
        )


class GridShapeError(GridTaskrError, ValueError):
    """Source and target grids do not have the same shape and dtype."""


class PartitionError(GridTaskrError, AssertionError):
    """Block coordinates do not tile the grid exactly once."""


class BlockFillError(GridTaskrError):
    """A worker failed while filling one block; the run is aborted."""

    def __init__(self, coord, cause):
        self.coord = coord
        self.cause = cause
        super().__init__(
            f"filling block {tuple(coord)} failed: {type(cause).__name__}: {cause}"
        )

    def __reduce__(self):
        return type(self), (self.coord, self.cause)
