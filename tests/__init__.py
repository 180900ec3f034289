"""grid_taskr test suite.

- tests/unit/: unit tests for blocks, shared grids, the executor and the
  fill driver. Process-pool tests start workers with the spawn method.

To run:
    pytest tests/
"""
