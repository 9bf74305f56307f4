"""Meter registry holding every in-process meter the exporter publishes"""
import threading
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from .models import MeterId, MeterType, Statistic, Tag, TimeUnit
from .meters import Counter, DistributionSummary, FunctionTimer, Gauge, Meter, Timer
from .naming import NamingConvention
from logging_config import get_logger


logger = get_logger(__name__)


class MeterRegistry:
    """Central registry for all meters"""

    def __init__(self, naming_convention: NamingConvention = NamingConvention.IDENTITY,
                 base_time_unit: TimeUnit = TimeUnit.SECONDS):
        self.naming_convention = naming_convention
        self.base_time_unit = base_time_unit
        self._meters: Dict[Tuple[str, Tuple[Tag, ...]], Meter] = {}
        self._lock = threading.Lock()

    def register(self, meter: Meter) -> Meter:
        """Register a meter, returning the existing one if the id is already taken"""
        if not isinstance(meter, Meter):
            raise ValueError("Meter must inherit from Meter")

        with self._lock:
            existing = self._meters.get(meter.id.key)
            if existing is not None:
                if existing.id.type != meter.id.type:
                    raise ValueError(
                        f"Meter {meter.id.name} already registered as {existing.id.type.value}, "
                        f"not {meter.id.type.value}"
                    )
                return existing

            self._meters[meter.id.key] = meter

        logger.debug("Registered meter", meter=meter.id.name, meter_type=meter.id.type.value,
                     event_type="meter_registered")
        return meter

    def counter(self, name: str, tags: Optional[Dict[str, str]] = None, description: Optional[str] = None) -> Counter:
        meter_id = MeterId.of(name, tags, MeterType.COUNTER, description)
        return self._get_or_register(meter_id, lambda: Counter(meter_id))

    def gauge(self, name: str, value_fn: Callable[[], float], tags: Optional[Dict[str, str]] = None,
              description: Optional[str] = None) -> Gauge:
        meter_id = MeterId.of(name, tags, MeterType.GAUGE, description)
        return self._get_or_register(meter_id, lambda: Gauge(meter_id, value_fn))

    def timer(self, name: str, tags: Optional[Dict[str, str]] = None, description: Optional[str] = None) -> Timer:
        meter_id = MeterId.of(name, tags, MeterType.TIMER, description, base_unit="seconds")
        return self._get_or_register(meter_id, lambda: Timer(meter_id))

    def function_timer(self, name: str, count_fn: Callable[[], float], total_time_fn: Callable[[], float],
                       total_time_unit: TimeUnit = TimeUnit.SECONDS, tags: Optional[Dict[str, str]] = None,
                       description: Optional[str] = None) -> FunctionTimer:
        meter_id = MeterId.of(name, tags, MeterType.FUNCTION_TIMER, description, base_unit="seconds")
        return self._get_or_register(
            meter_id, lambda: FunctionTimer(meter_id, count_fn, total_time_fn, total_time_unit)
        )

    def summary(self, name: str, tags: Optional[Dict[str, str]] = None, description: Optional[str] = None,
                base_unit: Optional[str] = None) -> DistributionSummary:
        meter_id = MeterId.of(name, tags, MeterType.DISTRIBUTION_SUMMARY, description, base_unit)
        return self._get_or_register(meter_id, lambda: DistributionSummary(meter_id))

    def meter(self, name: str, measurements: Iterable[Tuple[Statistic, Callable[[], float]]],
              tags: Optional[Dict[str, str]] = None, description: Optional[str] = None) -> Meter:
        """Register a custom meter exposing arbitrary statistics"""
        meter_id = MeterId.of(name, tags, MeterType.OTHER, description)
        return self._get_or_register(meter_id, lambda: Meter(meter_id, measurements))

    def get_meters(self) -> List[Meter]:
        """All registered meters in registration order"""
        with self._lock:
            return list(self._meters.values())

    def get_meter(self, name: str, tags: Optional[Dict[str, str]] = None) -> Optional[Meter]:
        return self._meters.get(MeterId.of(name, tags).key)

    def list_meters(self) -> List[str]:
        """List all registered meter names"""
        return [meter.id.name for meter in self.get_meters()]

    def convention_name(self, meter_id: MeterId) -> str:
        """Meter name rendered by the active naming convention"""
        return self.naming_convention.apply(meter_id.name)

    def convention_tags(self, meter_id: MeterId) -> List[Tag]:
        """Meter tags rendered by the active naming convention"""
        convention = self.naming_convention
        return [Tag(convention.tag_key(tag.key), convention.tag_value(tag.value)) for tag in meter_id.tags]

    def clear(self) -> None:
        with self._lock:
            self._meters.clear()

    def _get_or_register(self, meter_id: MeterId, factory: Callable[[], Meter]):
        existing = self._meters.get(meter_id.key)
        if existing is not None and existing.id.type == meter_id.type:
            return existing
        return self.register(factory())
