"""
Performance Tracking Utilities

Tracks per-request inference metrics:
- Tokenizing time (pre/post processing)
- Inference time (model forward/generate)
- Cumulative pipeline initialization time

All values are milliseconds.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class InferenceMetrics:
    """
    Metrics for a single ``run`` call.

    Attributes:
        tokenizing_time: Time spent preparing inputs and decoding outputs
        inference_time: Time spent inside the model
        init_time: Cumulative initialization time of the pipeline
    """
    tokenizing_time: Optional[float] = None
    inference_time: Optional[float] = None
    init_time: float = 0.0

    def add_tokenizing(self, elapsed_ms: float) -> None:
        self.tokenizing_time = (self.tokenizing_time or 0.0) + elapsed_ms

    def add_inference(self, elapsed_ms: float) -> None:
        self.inference_time = (self.inference_time or 0.0) + elapsed_ms

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary, omitting unset timings"""
        data: Dict[str, Any] = {}
        if self.tokenizing_time is not None:
            data["tokenizing_time"] = self.tokenizing_time
        if self.inference_time is not None:
            data["inference_time"] = self.inference_time
        data["init_time"] = self.init_time
        return data


class Stopwatch:
    """Monotonic millisecond stopwatch"""

    def __init__(self):
        self._start = time.perf_counter()

    def restart(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed(self) -> float:
        """Milliseconds since start/restart"""
        return (time.perf_counter() - self._start) * 1000

    def lap(self) -> float:
        """Return elapsed milliseconds and restart"""
        elapsed = self.elapsed
        self.restart()
        return elapsed
