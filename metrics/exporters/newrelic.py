"""New Relic Insights exporter running one export cycle per scheduler tick"""
import threading
import time
from typing import Optional
import httpx
from .base import BaseExporter
from .batching import effective_batch_size, partition
from .events import EventEncoder
from .insights import InsightsPublisher, insights_endpoint
from metrics.exceptions import MissingConfigurationError
from metrics.naming import NamingConvention
from metrics.registry import MeterRegistry
from config import Config
from logging_config import get_logger, log_export_cycle


logger = get_logger(__name__)


class NewRelicExporter(BaseExporter):
    """Publishes every registered meter to New Relic Insights as custom events.

    Construction fails fast on missing credentials or an unusable endpoint.
    After that, publish() only ever raises MalformedEndpointError; every other
    failure is logged and the cycle ends normally so the scheduler keeps going.
    """

    def __init__(self, config: Config, registry: MeterRegistry, publisher: Optional[InsightsPublisher] = None):
        self.config = config
        self.registry = registry
        self.account_id = self._require(config.newrelic_account_id, "newrelic_account_id")
        self.api_key = self._require(config.newrelic_api_key, "newrelic_api_key")

        insights_endpoint(config.newrelic_uri, self.account_id)

        registry.naming_convention = NamingConvention.CAMEL_CASE
        self.encoder = EventEncoder(registry, config.event_tags, reset=True)
        self.publisher = publisher or InsightsPublisher(
            self.api_key,
            config.newrelic_connect_timeout,
            config.newrelic_read_timeout
        )

        self._publish_lock = threading.Lock()
        self._healthy = True
        self.cycles = 0
        self.events_sent = 0
        self.failed_batches = 0
        self.last_publish_time = 0.0

        logger.info(
            "New Relic exporter configured",
            uri=config.newrelic_uri,
            account_id=self.account_id,
            batch_size=effective_batch_size(config.newrelic_batch_size),
            event_type="exporter_configured"
        )

    @staticmethod
    def _require(value: Optional[str], setting: str) -> str:
        if value is None or not value.strip():
            raise MissingConfigurationError(setting)
        return value.strip()

    def publish(self) -> None:
        """Run one export cycle: encode all meters, batch, and send each batch in order"""
        endpoint = insights_endpoint(self.config.newrelic_uri, self.account_id)

        if not self._publish_lock.acquire(blocking=False):
            logger.warning("Export cycle already in progress, skipping", event_type="export_cycle_skipped")
            return

        try:
            self._publish(endpoint)
        except Exception as e:
            self._healthy = False
            logger.warning(
                "Failed to send metrics",
                error=str(e),
                error_type=type(e).__name__,
                event_type="export_cycle_error",
                exc_info=True
            )
        finally:
            self._publish_lock.release()

    def _publish(self, endpoint: httpx.URL) -> None:
        start_time = time.time()
        self.cycles += 1

        events = self.encoder.encode_all(self.registry.get_meters())
        if not events:
            logger.debug("No events to publish", event_type="export_cycle_empty")
            self._healthy = True
            self.last_publish_time = time.time()
            return

        batches = 0
        failed = 0
        for batch in partition(events, self.config.newrelic_batch_size):
            batches += 1
            if self.publisher.send(endpoint, batch):
                self.events_sent += len(batch)
            else:
                failed += 1

        self.failed_batches += failed
        self._healthy = failed == 0
        self.last_publish_time = time.time()

        log_export_cycle(logger, len(events), batches, self.last_publish_time - start_time, failed)

    def is_healthy(self) -> bool:
        return self._healthy

    def get_status(self) -> dict:
        """Exporter statistics for status reporting"""
        return {
            "healthy": self._healthy,
            "cycles": self.cycles,
            "events_sent": self.events_sent,
            "failed_batches": self.failed_batches,
            "last_publish_time": self.last_publish_time or None,
            "batch_size": effective_batch_size(self.config.newrelic_batch_size),
            "uri": self.config.newrelic_uri,
        }
