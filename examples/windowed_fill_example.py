"""
Example: filling a shared grid block by block with a process pool.

Shows the two ways to use grid_taskr:

1. ``WindowedArrayFiller.run()`` - the whole allocate/fill/verify cycle.
2. The building blocks directly - SharedGrid handles passed explicitly to
   ``fill_block`` through a BlockExecutor.
"""

import numpy as np

from grid_taskr import (
    BlockExecutor,
    FillConfig,
    FillEmitter,
    SharedGrid,
    WindowedArrayFiller,
    block_coordinates,
    check_partition,
    fill_block,
)


def driver_example():
    emitter = FillEmitter()
    done = []

    @emitter.on("block_completed")
    def on_block(coord):
        done.append(coord)

    config = FillConfig(size=100, block_size=4, max_workers=4, seed=42)
    result = WindowedArrayFiller(config, emitter=emitter).run()

    print(f"{len(done)} blocks filled by {result.max_workers} workers in {result.elapsed:.3f}s")
    print(f"Target matches source: {result.matches}")


def building_blocks_example():
    size, block_size = 64, 8
    rng = np.random.default_rng(0)

    with SharedGrid.from_array(rng.random((size, size))) as source, SharedGrid((size, size)) as target:
        coords = list(block_coordinates(size, block_size))
        check_partition(coords, size, block_size)

        # Only the grid handles (name, shape, dtype) travel to the workers
        with BlockExecutor(max_workers=4) as executor:
            executor.submit_blocks(fill_block, coords, source.handle, target.handle, block_size)

        print(f"Grids equal: {np.array_equal(target.array, source.array)}")


if __name__ == "__main__":
    driver_example()
    building_blocks_example()
