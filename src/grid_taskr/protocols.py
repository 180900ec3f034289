"""Event emitter used to report fill progress."""

from .utils import EventEmitter


class FillEmitter(EventEmitter):
    """Event emitter for progress of a windowed fill.

    Events emitted:
    - 'fill_started': Before the first block is dispatched (payload: block count, worker count)
    - 'block_completed': When a block has been copied (payload: BlockCoordinate)
    - 'block_failed': When a block raised (payload: BlockCoordinate, exception)
    - 'fill_finished': After verification (payload: FillResult)
    """

    def emit_fill_started(self, block_count: int, max_workers: int):
        """Emit fill started event."""
        self.emit("fill_started", block_count, max_workers)

    def emit_block_completed(self, coord):
        """Emit block completed event."""
        self.emit("block_completed", coord)

    def emit_block_failed(self, coord, error: BaseException):
        """Emit block failed event."""
        self.emit("block_failed", coord, error)

    def emit_fill_finished(self, result):
        """Emit fill finished event."""
        self.emit("fill_finished", result)
