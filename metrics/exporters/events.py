"""Event encoder turning meter snapshots into flat Insights events"""
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple
from metrics.meters import DistributionSummary, FunctionTimer, Meter, Timer
from metrics.models import EventRecord, MeterId, MeterType
from metrics.registry import MeterRegistry


class EventEncoder:
    """Encodes meters into EventRecords.

    Every record carries the meter's tags rendered by the registry's naming
    convention, followed by the encoder's additional tags. The event type is
    the meter name rendered by the same convention.

    With reset=True every read starts a new interval on accumulating meters,
    so each encoding reports only what happened since the previous one.
    """

    def __init__(self, registry: MeterRegistry, additional_tags: Optional[Mapping[str, str]] = None,
                 reset: bool = False):
        self.registry = registry
        self.reset = reset
        self.additional_tags: Tuple[Tuple[str, str], ...] = tuple((additional_tags or {}).items())
        self._writers: Dict[MeterType, Callable[[Meter], Iterator[EventRecord]]] = {
            MeterType.TIMER: self.write_timer,
            MeterType.FUNCTION_TIMER: self.write_function_timer,
            MeterType.DISTRIBUTION_SUMMARY: self.write_summary,
        }

    def encode(self, meter: Meter) -> Iterator[EventRecord]:
        """Lazily encode one meter; the iterator reflects a single snapshot"""
        writer = self._writers.get(meter.id.type, self.write_meter)
        return writer(meter)

    def encode_all(self, meters: Iterable[Meter]) -> List[EventRecord]:
        """Encode meters in iteration order, keeping per-meter emission order"""
        events = []
        for meter in meters:
            events.extend(self.encode(meter))
        return events

    def write_timer(self, timer: Timer) -> Iterator[EventRecord]:
        snapshot = timer.take_snapshot(self.reset)
        unit = self.registry.base_time_unit

        yield self.event(timer.id, "count", snapshot.count)
        yield self.event(timer.id, "sum", snapshot.total(unit))
        yield self.event(timer.id, "avg", snapshot.mean(unit))
        yield self.event(timer.id, "max", snapshot.max(unit))

    def write_function_timer(self, timer: FunctionTimer) -> Iterator[EventRecord]:
        snapshot = timer.take_snapshot(self.reset)

        # sum reads the count, not the total time
        yield self.event(timer.id, "count", snapshot.count)
        yield self.event(timer.id, "sum", snapshot.count)
        yield self.event(timer.id, "mean", snapshot.mean(self.registry.base_time_unit))

    def write_summary(self, summary: DistributionSummary) -> Iterator[EventRecord]:
        snapshot = summary.take_snapshot(self.reset)

        yield self.event(summary.id, "count", snapshot.count)
        yield self.event(summary.id, "sum", snapshot.total())
        yield self.event(summary.id, "avg", snapshot.mean())
        yield self.event(summary.id, "max", snapshot.max())

    def write_meter(self, meter: Meter) -> Iterator[EventRecord]:
        for measurement in meter.measure(self.reset):
            yield self.event(meter.id, measurement.statistic.name.lower(), measurement.value)

    def event(self, meter_id: MeterId, statistic: str, value: float) -> EventRecord:
        """Build one record; non-finite values are passed through untouched"""
        tags = tuple((tag.key, tag.value) for tag in self.registry.convention_tags(meter_id))
        return EventRecord(
            event_type=self.registry.convention_name(meter_id),
            statistic=statistic,
            value=float(value),
            tags=tags + self.additional_tags,
        )
