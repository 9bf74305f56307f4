"""Meter and event data models"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from enum import Enum
from logging_config import get_logger


logger = get_logger(__name__)


class TimeUnit(Enum):
    """Time units, valued in seconds per unit"""
    NANOSECONDS = 1e-9
    MICROSECONDS = 1e-6
    MILLISECONDS = 1e-3
    SECONDS = 1.0
    MINUTES = 60.0
    HOURS = 3600.0
    DAYS = 86400.0

    def from_seconds(self, seconds: float) -> float:
        """Express a duration given in seconds in this unit"""
        return seconds / self.value


class Statistic(Enum):
    """Kind of value a measurement carries"""
    TOTAL = "total"
    TOTAL_TIME = "total_time"
    COUNT = "count"
    MAX = "max"
    VALUE = "value"
    UNKNOWN = "unknown"
    ACTIVE_TASKS = "active_tasks"
    DURATION = "duration"


class MeterType(Enum):
    """Closed set of meter kinds the event encoder dispatches on"""
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMER = "timer"
    FUNCTION_TIMER = "function_timer"
    DISTRIBUTION_SUMMARY = "distribution_summary"
    OTHER = "other"


@dataclass(frozen=True)
class Tag:
    """Single key/value dimension of a meter"""
    key: str
    value: str


@dataclass(frozen=True)
class MeterId:
    """Identity of a registered meter"""
    name: str
    tags: Tuple[Tag, ...] = ()
    type: MeterType = MeterType.OTHER
    description: Optional[str] = None
    base_unit: Optional[str] = None

    @classmethod
    def of(cls, name: str, tags: Optional[Dict[str, str]] = None, type: MeterType = MeterType.OTHER,
           description: Optional[str] = None, base_unit: Optional[str] = None) -> "MeterId":
        """Build an id with tags sorted by key"""
        sorted_tags = tuple(Tag(str(k), str(v)) for k, v in sorted((tags or {}).items()))
        return cls(name, sorted_tags, type, description, base_unit)

    @property
    def key(self) -> Tuple[str, Tuple[Tag, ...]]:
        """Registry lookup key (name plus tags)"""
        return self.name, self.tags


@dataclass(frozen=True)
class Measurement:
    """One statistic read from a meter"""
    statistic: Statistic
    value: float


@dataclass(frozen=True)
class HistogramSnapshot:
    """Point-in-time read of a timer or distribution summary.

    Timer snapshots hold durations in seconds; pass a unit to convert.
    Summary snapshots are unitless and read without a unit.
    """
    count: int
    total_amount: float
    max_amount: float

    def total(self, unit: Optional[TimeUnit] = None) -> float:
        return unit.from_seconds(self.total_amount) if unit else self.total_amount

    def mean(self, unit: Optional[TimeUnit] = None) -> float:
        mean = self.total_amount / self.count if self.count else 0.0
        return unit.from_seconds(mean) if unit else mean

    def max(self, unit: Optional[TimeUnit] = None) -> float:
        return unit.from_seconds(self.max_amount) if unit else self.max_amount


@dataclass(frozen=True)
class EventRecord:
    """Flat, wire-ready representation of one (meter, statistic) pair"""
    event_type: str
    statistic: str
    value: float
    tags: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        """Render as the flat Insights event object.

        Core fields come first. A tag whose key is already present, either a
        core field or an earlier tag that rendered to the same key, is
        dropped and logged at debug level.
        """
        event: Dict[str, Any] = {
            "eventType": self.event_type,
            "statistic": self.statistic,
            "value": self.value,
        }
        for key, value in self.tags:
            if key in event:
                logger.debug(
                    "Dropping duplicate event attribute",
                    key=key,
                    event_name=self.event_type,
                    event_type="event_attribute_dropped"
                )
                continue
            event[key] = value
        return event
