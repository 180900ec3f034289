"""Shared-memory backed numpy grids visible to every worker."""

import contextlib
import dataclasses
import multiprocessing.shared_memory
import typing

import numpy as np

from .exceptions import GridShapeError
from .helpers import get_logger
from .utils import humanize_bytes

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True)
class GridHandle:
    """
    Picklable reference to a SharedGrid.

    Workers receive a handle as an explicit argument and attach to the
    underlying segment by name; no grid data is copied across the pool.
    """

    name: str
    shape: tuple[int, ...]
    dtype: str

    @property
    def nbytes(self) -> int:
        return int(np.prod(self.shape)) * np.dtype(self.dtype).itemsize

    def open(
        self, writeable: bool = True
    ) -> tuple[multiprocessing.shared_memory.SharedMemory, np.ndarray]:
        """
        Attach to the segment and map it as a numpy array.

        The caller owns the returned SharedMemory and must drop every view
        of the array before calling ``shm.close()``:

            shm, arr = handle.open()
            try:
                ...
            finally:
                del arr
                shm.close()
        """
        shm = multiprocessing.shared_memory.SharedMemory(name=self.name)
        arr = np.ndarray(self.shape, dtype=self.dtype, buffer=shm.buf)
        arr.flags.writeable = writeable
        return shm, arr

    @contextlib.contextmanager
    def attach(self, writeable: bool = True) -> typing.Generator[np.ndarray, None, None]:
        """
        Context manager around ``open()``.

        The mapping is closed on exit, so the block must not keep views of
        the array alive past its end (``del arr`` before leaving it):

            with handle.attach() as arr:
                total = float(arr.sum())
                del arr
        """
        shm, arr = self.open(writeable)
        try:
            yield arr
        finally:
            del arr
            shm.close()


class SharedGrid:
    """
    A two-dimensional numpy array living in a shared memory segment.

    The creating process owns the segment and unlinks it on ``close()``
    (or when leaving the ``with`` block). Other processes and threads reach
    it through ``handle``.
    """

    def __init__(self, shape, dtype="float64", name=None):
        shape = tuple(int(d) for d in shape)
        if len(shape) != 2 or min(shape) < 1:
            raise GridShapeError(f"grid shape must be two positive dimensions, got {shape}")
        self._dtype = np.dtype(dtype)
        nbytes = int(np.prod(shape)) * self._dtype.itemsize

        self._shared_memory = multiprocessing.shared_memory.SharedMemory(
            create=True, size=nbytes, name=name
        )
        self._array = np.ndarray(shape, dtype=self._dtype, buffer=self._shared_memory.buf)
        self._array.fill(0)
        self.handle = GridHandle(self._shared_memory.name, shape, self._dtype.str)
        logger.info(
            "Allocated shared grid %s: shape=%s dtype=%s (%s)",
            self.handle.name,
            shape,
            self._dtype.name,
            humanize_bytes(nbytes),
        )

    @classmethod
    def from_array(cls, source: np.ndarray, name=None) -> "SharedGrid":
        """Allocate a shared grid and copy ``source`` into it once."""
        source = np.asarray(source)
        grid = cls(source.shape, dtype=source.dtype, name=name)
        grid.array[:] = source
        return grid

    @property
    def name(self) -> str:
        return self.handle.name

    @property
    def shape(self) -> tuple[int, ...]:
        return self.handle.shape

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def closed(self) -> bool:
        return self._shared_memory is None

    @property
    def array(self) -> np.ndarray:
        """The owner's view of the grid."""
        if self._array is None:
            raise RuntimeError(f"shared grid {self.handle.name} is closed")
        return self._array

    def freeze(self) -> None:
        """Mark the owner's view read-only."""
        self.array.flags.writeable = False

    def check_compatible(self, other: "SharedGrid") -> None:
        """Raise GridShapeError unless ``other`` has the same shape and dtype."""
        if self.shape != other.shape or self.dtype != other.dtype:
            raise GridShapeError(
                f"grid {self.name} is {self.shape}/{self.dtype.name} but "
                f"grid {other.name} is {other.shape}/{other.dtype.name}"
            )

    def close(self) -> None:
        """Release the owner's mapping and unlink the segment."""
        if self._shared_memory is None:
            return
        shm, self._shared_memory = self._shared_memory, None
        self._array = None
        try:
            shm.close()
        except BufferError:
            logger.warning(
                "Shared grid %s still has exported views; unlinking anyway", shm.name
            )
        try:
            shm.unlink()
            logger.debug("Shared memory unlinked: %s", shm.name)
        except FileNotFoundError:
            logger.warning("Shared memory already unlinked: %s", shm.name)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self):
        state = "closed" if self.closed else "open"
        return (
            f"{self.__class__.__name__}(name={self.handle.name!r}, "
            f"shape={self.shape}, dtype={self._dtype.name}, {state})"
        )
