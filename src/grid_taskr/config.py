"""Run configuration for the windowed fill."""

import dataclasses
import logging
from typing import Optional

import numpy as np

from .blocks import check_block_size
from .helpers import MultiprocessingHelper

EXECUTOR_CHOICES = ("process", "thread", "serial")


@dataclasses.dataclass
class FillConfig:
    """Parameters of one fill-and-verify run.

    ``size`` and ``block_size`` are validated eagerly: a block size that
    does not divide the grid is rejected before any memory is allocated.
    """

    size: int = 100
    block_size: int = 4
    max_workers: Optional[int] = None
    executor_type: str = "process"
    seed: Optional[int] = 0
    dtype: str = "float64"
    timeout: Optional[float] = None
    check_partition: bool = True
    log_level: int = logging.INFO

    def __post_init__(self):
        check_block_size(self.size, self.block_size)
        if self.executor_type not in EXECUTOR_CHOICES:
            raise ValueError(
                f"executor_type must be one of {EXECUTOR_CHOICES}, got {self.executor_type!r}"
            )
        self.max_workers = MultiprocessingHelper.default_max_workers(self.max_workers)
        try:
            kind = np.dtype(self.dtype).kind
        except TypeError as e:
            raise ValueError(f"Unknown dtype: {self.dtype!r}") from e
        if kind != "f":
            raise ValueError(f"dtype must be a floating point type, got {self.dtype!r}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if isinstance(self.log_level, str):
            level = logging.getLevelName(self.log_level.upper())
            if not isinstance(level, int):
                raise ValueError(f"Unknown log level: {self.log_level}")
            self.log_level = level

    @property
    def block_count(self) -> int:
        return (self.size // self.block_size) ** 2

    @classmethod
    def from_args(cls, args) -> "FillConfig":
        """Build a config from an argparse namespace."""
        return cls(
            size=args.size,
            block_size=args.block_size,
            max_workers=args.workers,
            executor_type=args.executor,
            seed=args.seed,
            dtype=args.dtype,
            timeout=args.timeout,
            check_partition=not args.no_partition_check,
            log_level=args.log_level,
        )
