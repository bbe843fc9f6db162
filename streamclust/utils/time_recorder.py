"""
Instrumentation sink for clustering runs.

Collects (event description, measured value) pairs in the order they are
reported. The clustering core only appends; the runner persists the list.
"""

import time
from contextlib import contextmanager
from typing import Any, Iterator, List

import pandas as pd


class TimeRecorder:
    """
    Append-only list of events and their measured values.

    Attributes
    ----------
    event_list : List[str]
        Event descriptions, e.g. "SVD takes: ".
    time_list : List[str]
        Measured values formatted as strings (seconds carry an "s" suffix).
    """

    def __init__(self):
        self.event_list: List[str] = []
        self.time_list: List[str] = []

    def record(self, event: str, value: Any):
        self.event_list.append(event)
        self.time_list.append(str(value))

    @contextmanager
    def timer(self, event: str) -> Iterator[None]:
        """
        Times the enclosed block and records the elapsed seconds under `event`.
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self.record(event, f"{elapsed:.6f}s")

    def __len__(self) -> int:
        return len(self.event_list)

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({"event": self.event_list, "value": self.time_list})
