"""In-process meters.

Accumulating meters can be read with reset=True, which returns the values
gathered since the previous resetting read and starts a new interval. The
exporter reads that way so every cycle reports one interval.
"""
import threading
import time
from contextlib import contextmanager
from datetime import timedelta
from typing import Callable, Iterable, List, Tuple, Union
from .models import HistogramSnapshot, Measurement, MeterId, Statistic, TimeUnit


class Meter:
    """Generic meter backed by measurement callables"""

    def __init__(self, meter_id: MeterId, measurements: Iterable[Tuple[Statistic, Callable[[], float]]] = ()):
        self.id = meter_id
        self._measurements = list(measurements)

    def measure(self, reset: bool = False) -> List[Measurement]:
        """Read every statistic this meter exposes; callable-backed values ignore reset"""
        return [Measurement(statistic, float(fn())) for statistic, fn in self._measurements]


class Counter(Meter):
    """Monotonically increasing count"""

    def __init__(self, meter_id: MeterId):
        super().__init__(meter_id)
        self._lock = threading.Lock()
        self._count = 0.0

    def increment(self, amount: float = 1.0) -> None:
        with self._lock:
            self._count += amount

    def count(self, reset: bool = False) -> float:
        with self._lock:
            count = self._count
            if reset:
                self._count = 0.0
            return count

    def measure(self, reset: bool = False) -> List[Measurement]:
        return [Measurement(Statistic.COUNT, self.count(reset))]


class Gauge(Meter):
    """Instantaneous value sampled from a callable on every read"""

    def __init__(self, meter_id: MeterId, value_fn: Callable[[], float]):
        super().__init__(meter_id)
        self._value_fn = value_fn

    def value(self) -> float:
        return float(self._value_fn())

    def measure(self, reset: bool = False) -> List[Measurement]:
        return [Measurement(Statistic.VALUE, self.value())]


class DistributionSummary(Meter):
    """Tracks count, total and max of recorded amounts"""

    def __init__(self, meter_id: MeterId):
        super().__init__(meter_id)
        self._lock = threading.Lock()
        self._count = 0
        self._total = 0.0
        self._max = 0.0

    def record(self, amount: float) -> None:
        if amount < 0:
            return
        with self._lock:
            self._count += 1
            self._total += amount
            self._max = max(self._max, amount)

    def take_snapshot(self, reset: bool = False) -> HistogramSnapshot:
        with self._lock:
            snapshot = HistogramSnapshot(self._count, self._total, self._max)
            if reset:
                self._count = 0
                self._total = 0.0
                self._max = 0.0
            return snapshot

    def measure(self, reset: bool = False) -> List[Measurement]:
        snapshot = self.take_snapshot(reset)
        return [
            Measurement(Statistic.COUNT, float(snapshot.count)),
            Measurement(Statistic.TOTAL, snapshot.total()),
            Measurement(Statistic.MAX, snapshot.max()),
        ]


class Timer(DistributionSummary):
    """Tracks count, total and max of recorded durations, stored in seconds"""

    def record(self, duration: Union[float, timedelta]) -> None:
        if isinstance(duration, timedelta):
            duration = duration.total_seconds()
        super().record(duration)

    @contextmanager
    def time(self):
        """Record the wall-clock duration of the enclosed block"""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(time.perf_counter() - start)

    def measure(self, reset: bool = False) -> List[Measurement]:
        snapshot = self.take_snapshot(reset)
        return [
            Measurement(Statistic.COUNT, float(snapshot.count)),
            Measurement(Statistic.TOTAL_TIME, snapshot.total(TimeUnit.SECONDS)),
            Measurement(Statistic.MAX, snapshot.max(TimeUnit.SECONDS)),
        ]


class FunctionTimer(Meter):
    """Timer whose count and total time are read from an external source.

    total_time_fn returns the accumulated time in total_time_unit. Both
    functions are expected to be cumulative; resetting reads report the
    difference from the previous resetting read.
    """

    def __init__(self, meter_id: MeterId, count_fn: Callable[[], float], total_time_fn: Callable[[], float],
                 total_time_unit: TimeUnit = TimeUnit.SECONDS):
        super().__init__(meter_id)
        self._count_fn = count_fn
        self._total_time_fn = total_time_fn
        self._total_time_unit = total_time_unit
        self._lock = threading.Lock()
        self._last_count = 0.0
        self._last_total = 0.0

    def count(self) -> float:
        return float(self._count_fn())

    def total_time(self, unit: TimeUnit) -> float:
        seconds = float(self._total_time_fn()) * self._total_time_unit.value
        return unit.from_seconds(seconds)

    def mean(self, unit: TimeUnit) -> float:
        count = self.count()
        return self.total_time(unit) / count if count else 0.0

    def take_snapshot(self, reset: bool = False) -> HistogramSnapshot:
        """Count and total time in seconds; max is not tracked"""
        with self._lock:
            count = self.count()
            total = self.total_time(TimeUnit.SECONDS)
            if not reset:
                return HistogramSnapshot(count, total, 0.0)
            snapshot = HistogramSnapshot(count - self._last_count, total - self._last_total, 0.0)
            self._last_count = count
            self._last_total = total
            return snapshot

    def measure(self, reset: bool = False) -> List[Measurement]:
        snapshot = self.take_snapshot(reset)
        return [
            Measurement(Statistic.COUNT, float(snapshot.count)),
            Measurement(Statistic.TOTAL_TIME, snapshot.total(TimeUnit.SECONDS)),
        ]
