"""
grid_taskr - Fill a shared numpy grid in parallel, one square block per task.

A source grid is copied into a target grid living in shared memory. The
grid is tiled into non-overlapping B x B blocks, each block is copied by an
independent worker (process or thread pool), and the parallel result is
compared element-wise with the source.
"""

from .blocks import BlockCoordinate, block_coordinates, check_block_size, check_partition
from .config import FillConfig
from .exceptions import (
    BlockAlignmentError,
    BlockBoundsError,
    BlockFillError,
    GridShapeError,
    GridTaskrError,
    PartitionError,
)
from .executor import BlockExecutor
from .filler import FillResult, WindowedArrayFiller, fill_block, fill_sequential
from .grid import GridHandle, SharedGrid
from .helpers import MultiprocessingHelper, get_logger
from .protocols import FillEmitter
from .utils import EventEmitter

# Qt signal bridge (optional)
from .qt_compat import QT_AVAILABLE

__all__ = [
    "BlockCoordinate",
    "block_coordinates",
    "check_block_size",
    "check_partition",
    "FillConfig",
    "GridTaskrError",
    "BlockBoundsError",
    "BlockAlignmentError",
    "GridShapeError",
    "PartitionError",
    "BlockFillError",
    "BlockExecutor",
    "WindowedArrayFiller",
    "FillResult",
    "fill_block",
    "fill_sequential",
    "GridHandle",
    "SharedGrid",
    "MultiprocessingHelper",
    "get_logger",
    "FillEmitter",
    "EventEmitter",
    "QT_AVAILABLE",
]

if QT_AVAILABLE:
    from .signals import FillSignals, connect_emitter

    __all__.extend(["FillSignals", "connect_emitter"])

__version__ = "1.0.0"
