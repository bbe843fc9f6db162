"""
Fixed-size worker pool helpers.

Row-wise loops (distance matrix fill, nearest-centroid assignment) are split
into contiguous chunks and dispatched to a joblib thread pool. Each call to
`map_row_chunks` is a full barrier: it only returns once every chunk is done,
and results come back in chunk order.
"""

from typing import Any, Callable, List, Tuple

import numpy as np
from joblib import Parallel, delayed, effective_n_jobs


def row_chunks(n_rows: int, n_jobs: int) -> List[Tuple[int, int]]:
    """
    Splits ``range(n_rows)`` into at most ``n_jobs`` contiguous (start, stop) slices.
    """
    if n_rows <= 0:
        return []
    n_chunks = max(1, min(n_jobs, n_rows))
    bounds = np.linspace(0, n_rows, n_chunks + 1).astype(int)
    return [(int(bounds[i]), int(bounds[i + 1])) for i in range(n_chunks)
            if bounds[i] < bounds[i + 1]]


def map_row_chunks(
        func: Callable[[int, int], Any],
        n_rows: int,
        n_jobs: int = 1
) -> List[Any]:
    """
    Applies ``func(start, stop)`` to every row chunk.

    Parameters
    ----------
    func : Callable
        Worker receiving the half-open row interval it owns.
    n_rows : int
        Number of rows to cover.
    n_jobs : int, default=1
        Pool size. -1 uses all cores; 1 runs inline without a pool.

    Returns
    -------
    list
        One result per chunk, in ascending row order.
    """
    if n_jobs == 1:
        return [func(start, stop) for start, stop in row_chunks(n_rows, 1)]

    workers = effective_n_jobs(n_jobs)
    chunks = row_chunks(n_rows, workers)
    return Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(func)(start, stop) for start, stop in chunks
    )
