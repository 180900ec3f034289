"""
Qt signal bridge for fill progress.

Re-emits the events of a FillEmitter as Qt signals so a Qt application can
follow a run with ordinary signal/slot connections:

    signals = connect_emitter(filler.emitter)
    signals.block_completed.connect(progress_bar_step)
    filler.run()

Signals are emitted from whichever thread completes the block (the pool's
management thread for parallel runs); use queued connections for widgets.
"""

from typing import Optional

from .protocols import FillEmitter
from .qt_compat import QT_AVAILABLE, QtCore, Signal

if QT_AVAILABLE:

    class FillSignals(QtCore.QObject):
        """Qt signals for WindowedArrayFiller events."""

        fill_started = Signal(int, int)  # block_count, max_workers
        block_completed = Signal(object)  # coord
        block_failed = Signal(object, object)  # coord, exception
        fill_finished = Signal(object)  # FillResult

else:
    FillSignals = None


def _safe_emit(signal, *args):
    try:
        signal.emit(*args)
    except RuntimeError:
        pass  # Qt object may have been deleted


def connect_emitter(emitter: FillEmitter, signals: Optional["FillSignals"] = None):
    """
    Forward every FillEmitter event to the matching Qt signal.

    Returns the FillSignals instance (created when not supplied).

    Raises:
        RuntimeError: If no Qt binding is installed
    """
    if not QT_AVAILABLE:
        raise RuntimeError("Qt is not available - install PySide6, PyQt6 or PyQt5")

    if signals is None:
        signals = FillSignals()

    emitter.on("fill_started", lambda count, workers: _safe_emit(signals.fill_started, count, workers))
    emitter.on("block_completed", lambda coord: _safe_emit(signals.block_completed, coord))
    emitter.on("block_failed", lambda coord, exc: _safe_emit(signals.block_failed, coord, exc))
    emitter.on("fill_finished", lambda result: _safe_emit(signals.fill_finished, result))
    return signals


__all__ = ["FillSignals", "connect_emitter"]
