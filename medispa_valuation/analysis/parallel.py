"""
Ordered work distribution for grid and simulation runs.

Evaluations are independent, so a run of n items is split into contiguous
index chunks of near-equal size, one per worker. Chunk results are always
reassembled in index order, so downstream statistics do not depend on how
the workers were scheduled.
"""

from collections.abc import Callable, Sequence
from concurrent.futures import Executor
from concurrent.futures import ProcessPoolExecutor
from concurrent.futures import ThreadPoolExecutor
import logging
import os
from typing import Optional

import numpy as np

from medispa_valuation.errors import ValuationError

logger = logging.getLogger(__name__)

PARALLEL_THRESHOLD = 1_000

ChunkFunc = Callable[[int, int], Sequence[float]]


def partition(n_items: int, n_chunks: int) -> list[tuple[int, int]]:
  """
  Split range(n_items) into at most n_chunks contiguous [start, stop) ranges.

  Chunk sizes differ by at most one; empty chunks are dropped.
  """
  if n_items <= 0 or n_chunks <= 0:
    return []
  base, extra = divmod(n_items, n_chunks)
  bounds = []
  start = 0
  for i in range(n_chunks):
    stop = start + base + (1 if i < extra else 0)
    if stop > start:
      bounds.append((start, stop))
    start = stop
  return bounds


def resolve_workers(
    n_items: int,
    max_workers: Optional[int],
    min_parallel: int = PARALLEL_THRESHOLD,
) -> int:
  """Number of workers to use; 1 means run inline."""
  if n_items < min_parallel:
    return 1
  if max_workers is None:
    max_workers = os.cpu_count() or 1
  return max(1, min(max_workers, n_items))


def map_chunks(
    chunk_func: ChunkFunc,
    n_items: int,
    max_workers: Optional[int] = None,
    use_processes: bool = False,
    min_parallel: int = PARALLEL_THRESHOLD,
) -> np.ndarray:
  """
  Evaluate chunk_func over range(n_items) and return results in index order.

  Valuations are pure-Python and CPU-bound, so a thread pool is limited by
  the GIL and gives little speed-up. Pass use_processes=True for wall-clock
  speed-up on large runs; chunk evaluators and valuation errors are
  picklable for that path.

  Args:
    chunk_func: Callable(start, stop) returning one float per index in
      [start, stop). Must be picklable when use_processes is True.
    n_items: Number of evaluations
    max_workers: Worker cap (default: CPU count). 1 forces inline execution.
    use_processes: Use a process pool instead of a thread pool
    min_parallel: Runs smaller than this execute inline

  Returns:
    1-D float array of length n_items

  Raises:
    ValuationError: The error from the lowest-index failing evaluation
  """
  workers = resolve_workers(n_items, max_workers, min_parallel)
  if workers == 1:
    return np.asarray(chunk_func(0, n_items), dtype=float)

  bounds = partition(n_items, workers)
  logger.info('Evaluating %d items in %d chunks (%s)', n_items, len(bounds),
              'processes' if use_processes else 'threads')

  executor: Executor
  if use_processes:
    executor = ProcessPoolExecutor(max_workers=workers)
  else:
    executor = ThreadPoolExecutor(max_workers=workers)

  with executor:
    futures = [executor.submit(chunk_func, start, stop) for start, stop in bounds]
    try:
      parts = [future.result() for future in futures]
    except ValuationError:
      for future in futures:
        future.cancel()
      raise

  return np.concatenate([np.asarray(part, dtype=float) for part in parts])
