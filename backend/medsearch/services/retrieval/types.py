"""
Shared callback and deadline helpers for the retrieval pipeline.

Deadlines are absolute time.monotonic() values so they can be handed
from the pipeline to the coordinator to each adapter without drift.
"""
import time
from typing import Callable, Optional

from medsearch.schemas.events import ProgressStep

# (step, message, detail) -> None
ProgressCallback = Callable[[ProgressStep, str, Optional[str]], None]


def _noop_callback(step: ProgressStep, message: str, detail: Optional[str] = None):
    pass


def deadline_after(seconds: float) -> float:
    return time.monotonic() + seconds


def seconds_left(deadline: float) -> float:
    """Seconds until `deadline`, never negative."""
    return max(deadline - time.monotonic(), 0.0)
