import time
from collections import deque
from typing import Callable, Deque, Dict


class PerformanceMonitor:
    """Rolling wall-clock samples per named operation."""

    def __init__(self, max_samples: int = 100, clock: Callable[[], float] = time.perf_counter):
        self._max_samples = max_samples
        self._clock = clock
        self._samples: Dict[str, Deque[float]] = {}

    def start_timer(self, name: str) -> Callable[[], float]:
        start = self._clock()

        def stop() -> float:
            duration_ms = (self._clock() - start) * 1000
            self.record(name, duration_ms)
            return duration_ms
        return stop

    def record(self, name: str, duration_ms: float):
        if name not in self._samples:
            self._samples[name] = deque(maxlen=self._max_samples)
        self._samples[name].append(duration_ms)

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        result = {}
        for name, samples in self._samples.items():
            if not samples:
                continue
            result[name] = {
                "count": len(samples),
                "average": round(sum(samples) / len(samples), 2),
                "min": round(min(samples), 2),
                "max": round(max(samples), 2),
            }
        return result

    def clear(self):
        self._samples.clear()


performance_monitor = PerformanceMonitor()
