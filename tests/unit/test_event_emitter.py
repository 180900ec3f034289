"""
Unit tests for FillEmitter, EventEmitter and the small helpers in utils.
"""

import logging

import pytest

from grid_taskr import BlockCoordinate, EventEmitter, FillEmitter, get_logger
from grid_taskr.helpers import set_log_level
from grid_taskr.utils import humanize_bytes, log_execution_time

logger = get_logger(__name__)


class TestFillEmitter:
    """Test suite for FillEmitter event handling."""

    def setup_method(self):
        self.emitter = FillEmitter()
        self.test_events = []

    def teardown_method(self):
        self.test_events.clear()

    def test_decorator_event_registration(self):
        @self.emitter.on("fill_started")
        def on_started(count, workers):
            self.test_events.append(f"started: {count}/{workers}")

        @self.emitter.on("block_completed")
        def on_block(coord):
            self.test_events.append(f"block: {coord}")

        @self.emitter.on("block_failed")
        def on_failed(coord, error):
            self.test_events.append(f"failed: {coord} {error}")

        @self.emitter.on("fill_finished")
        def on_finished(result):
            self.test_events.append(f"finished: {result}")

        self.emitter.emit_fill_started(4, 2)
        self.emitter.emit_block_completed(BlockCoordinate(0, 4))
        self.emitter.emit_block_failed(BlockCoordinate(4, 4), ValueError("boom"))
        self.emitter.emit_fill_finished(True)

        assert self.test_events == [
            "started: 4/2",
            "block: (0, 4)",
            "failed: (4, 4) boom",
            "finished: True",
        ]

    def test_multiple_handlers_run_in_registration_order(self):
        self.emitter.on("block_completed", lambda c: self.test_events.append(("first", c)))
        self.emitter.on("block_completed", lambda c: self.test_events.append(("second", c)))

        self.emitter.emit_block_completed(BlockCoordinate(0, 0))

        assert [name for name, _ in self.test_events] == ["first", "second"]

    def test_same_handler_registered_once(self):
        def handler(coord):
            self.test_events.append(coord)

        self.emitter.on("block_completed", handler)
        self.emitter.on("block_completed", handler)
        self.emitter.emit_block_completed(BlockCoordinate(0, 0))

        assert len(self.test_events) == 1

    def test_remove_handler(self):
        def handler(coord):
            self.test_events.append(coord)

        self.emitter.on("block_completed", handler)
        self.emitter.remove("block_completed", handler)
        self.emitter.remove("block_completed", handler)
        self.emitter.emit_block_completed(BlockCoordinate(0, 0))

        assert self.test_events == []

    def test_once(self):
        self.emitter.once("fill_finished", self.test_events.append)

        self.emitter.emit_fill_finished("a")
        self.emitter.emit_fill_finished("b")

        assert self.test_events == ["a"]

    def test_emit_without_listeners(self):
        EventEmitter().emit("nothing", 1, 2, 3)


class TestUtils:
    @pytest.mark.parametrize(
        "num_bytes,expected",
        [(0, "0 B"), (512, "512 B"), (2048, "2 KB"), (80000, "78.12 KB"), (3 * 1024**3, "3 GB")],
    )
    def test_humanize_bytes(self, num_bytes, expected):
        assert humanize_bytes(num_bytes) == expected

    def test_humanize_bytes_negative(self):
        with pytest.raises(ValueError):
            humanize_bytes(-1)

    def test_log_execution_time(self, caplog):
        @log_execution_time(loglvl=logging.WARNING)
        def answer():
            return 42

        utils_logger = logging.getLogger("grid_taskr.utils")
        utils_logger.addHandler(caplog.handler)
        try:
            assert answer() == 42
        finally:
            utils_logger.removeHandler(caplog.handler)

        assert any("answer" in r.getMessage() and "executed in" in r.getMessage() for r in caplog.records)

    def test_set_log_level(self):
        get_logger("grid_taskr.test_level")
        try:
            assert set_log_level("debug") == logging.DEBUG
            assert logging.getLogger("grid_taskr.test_level").level == logging.DEBUG
        finally:
            set_log_level(logging.INFO)

    def test_set_log_level_unknown(self):
        with pytest.raises(ValueError, match=r"Unknown log level: chatty$"):
            set_log_level("chatty")
