"""Fixed-size worker pool that dispatches one task per block."""

import concurrent.futures
import concurrent.futures.process
import multiprocessing.context
import threading
from typing import Callable, Iterable, List, Optional

from .blocks import BlockCoordinate, as_coordinate
from .exceptions import BlockFillError
from .helpers import MultiprocessingHelper, get_logger
from .protocols import FillEmitter

logger = get_logger(__name__)

EXECUTOR_TYPES = ("process", "thread")


class BlockExecutor(concurrent.futures.Executor):
    """
    Executor that provides the concurrent.futures API over a process pool
    (default) or a thread pool, plus ``submit_blocks`` for dispatching one
    task per block coordinate with first-failure propagation.

    Usage:
        with BlockExecutor(max_workers=4) as executor:
            # Standard concurrent.futures API
            future = executor.submit(func, arg)

            # One call per block; raises BlockFillError on the first failure
            done = executor.submit_blocks(fill_block, coords, source, target, 4)

    Progress is reported through ``emitter`` ('block_completed' and
    'block_failed' events), which may be shared with the caller.

    Note: with the process pool, submitted functions must be picklable
    (module-level functions, not lambdas or closures).
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        executor_type: str = "process",
        mp_context: Optional[multiprocessing.context.BaseContext] = None,
        emitter: Optional[FillEmitter] = None,
    ):
        if executor_type not in EXECUTOR_TYPES:
            raise ValueError(
                f"executor_type must be one of {EXECUTOR_TYPES}, got {executor_type!r}"
            )
        self._max_workers = MultiprocessingHelper.default_max_workers(max_workers)
        self._executor_type = executor_type
        self.emitter = emitter if emitter is not None else FillEmitter()

        if executor_type == "process":
            self._mp_context = mp_context or MultiprocessingHelper.get_context()
            self._executor = concurrent.futures.ProcessPoolExecutor(
                max_workers=self._max_workers,
                mp_context=self._mp_context,
            )
        else:
            self._mp_context = None
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="grid_taskr",
            )

        self._futures: List[concurrent.futures.Future] = []
        self._shutdown = False
        self._state_lock = threading.Lock()
        logger.debug(
            "BlockExecutor started: %s pool with %d workers",
            self._executor_type,
            self._max_workers,
        )

    @property
    def max_workers(self) -> int:
        """Return the maximum number of workers."""
        return self._max_workers

    @property
    def executor_type(self) -> str:
        return self._executor_type

    def _check_open(self):
        if self._shutdown:
            raise RuntimeError("Cannot schedule new futures after shutdown.")

    def submit(self, fn: Callable, *args, **kwargs) -> concurrent.futures.Future:
        """
        Submit a callable to be executed by a worker.

        Raises:
            RuntimeError: If the executor has been shut down
        """
        with self._state_lock:
            self._check_open()
            future = self._executor.submit(fn, *args, **kwargs)
            self._futures.append(future)

        future.add_done_callback(self._forget_future)
        return future

    def map(
        self,
        fn: Callable,
        *iterables,
        timeout: Optional[float] = None,
        chunksize: int = 1,
    ):
        """
        Map a function over iterables, executing in parallel.

        Returns:
            Iterator of results in the same order as the input iterables

        Raises:
            RuntimeError: If the executor has been shut down
        """
        with self._state_lock:
            self._check_open()

        return self._executor.map(fn, *iterables, timeout=timeout, chunksize=chunksize)

    def submit_blocks(
        self,
        fn: Callable,
        coords: Iterable,
        *args,
        timeout: Optional[float] = None,
    ) -> List[BlockCoordinate]:
        """
        Call ``fn(*args, coord)`` once per coordinate and wait for all of them.

        Args:
            fn: Picklable callable taking the block coordinate as last argument
            coords: Block coordinates (or (row, col) pairs) to dispatch
            *args: Leading arguments passed to every call
            timeout: Maximum seconds to wait for the whole batch

        Returns:
            The dispatched coordinates, in dispatch order

        Raises:
            BlockFillError: On the first failing block, including a worker
                process dying mid-batch; outstanding blocks are cancelled and
                running ones awaited before raising
            TimeoutError: If the batch does not finish within ``timeout``
        """
        coords = [as_coordinate(c) for c in coords]
        futures = {}
        broken = None
        for coord in coords:
            try:
                future = self.submit(fn, *args, coord)
            except concurrent.futures.process.BrokenProcessPool as e:
                logger.error("Worker pool broke while submitting block %s", coord)
                broken = (coord, e)
                break
            future.add_done_callback(
                lambda f, c=coord: self._on_block_done(f, c)
            )
            futures[future] = coord

        done, not_done = concurrent.futures.wait(
            futures, timeout=timeout, return_when=concurrent.futures.FIRST_EXCEPTION
        )

        failed = [f for f in done if not f.cancelled() and f.exception() is not None]
        if failed or broken is not None:
            self._abort(not_done, timeout)
            if failed:
                first = min(failed, key=lambda f: coords.index(futures[f]))
                coord, exc = futures[first], first.exception()
            else:
                coord, exc = broken
            logger.error("Block %s failed, aborting %d pending blocks: %s",
                         coord, len(not_done), exc)
            raise BlockFillError(coord, exc) from exc

        if not_done:
            for future in not_done:
                future.cancel()
            raise TimeoutError(
                f"{len(not_done)} of {len(coords)} blocks did not finish within {timeout}s"
            )

        return coords

    @staticmethod
    def _abort(not_done, timeout: Optional[float]):
        """Cancel pending blocks and wait for the ones already running."""
        # a cancelled future never completes once the pool is broken,
        # so only the uncancellable ones are waited on
        running = [f for f in not_done if not f.cancel()]
        if running:
            concurrent.futures.wait(running, timeout=timeout)

    def _forget_future(self, future: concurrent.futures.Future):
        with self._state_lock:
            if future in self._futures:
                self._futures.remove(future)

    def _on_block_done(self, future: concurrent.futures.Future, coord: BlockCoordinate):
        """Called when a block future completes - emits the matching event."""
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self.emitter.emit_block_failed(coord, exc)
        else:
            logger.debug("Block %s done", coord)
            self.emitter.emit_block_completed(coord)

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False):
        """
        Shutdown the executor.

        Args:
            wait: If True, wait for all pending futures to complete
            cancel_futures: If True, cancel all pending futures
        """
        with self._state_lock:
            self._shutdown = True

        self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True, cancel_futures=exc_type is not None)
        return False
