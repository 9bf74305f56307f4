"""Tests for the New Relic export cycle"""
import json
from unittest.mock import patch
import httpx
import pytest

from config import Config
from metrics.exceptions import MalformedEndpointError, MissingConfigurationError
from metrics.exporters.insights import InsightsPublisher
from metrics.exporters.newrelic import NewRelicExporter
from metrics.naming import NamingConvention
from metrics.registry import MeterRegistry


class SequenceTransport(httpx.MockTransport):
    """Mock transport answering with the given status codes in order, then 200"""

    def __init__(self, *status_codes):
        self.requests = []
        statuses = list(status_codes)

        def handler(request):
            self.requests.append(request)
            status = statuses.pop(0) if statuses else 200
            return httpx.Response(status, text="" if status < 400 else "server error")

        super().__init__(handler)

    def batch_sizes(self):
        return [len(json.loads(request.content)) for request in self.requests]


def make_exporter(config, registry, transport):
    publisher = InsightsPublisher(
        config.newrelic_api_key,
        config.newrelic_connect_timeout,
        config.newrelic_read_timeout,
        transport=transport
    )
    return NewRelicExporter(config, registry, publisher)


class TestExporterConstruction:
    """Test fail-fast configuration checks"""

    def test_missing_account_id_and_api_key(self):
        with pytest.raises(MissingConfigurationError) as exc_info:
            NewRelicExporter(Config(), MeterRegistry())

        assert exc_info.value.setting == "newrelic_account_id"

    def test_missing_api_key(self):
        with pytest.raises(MissingConfigurationError) as exc_info:
            NewRelicExporter(Config(newrelic_account_id="12345", newrelic_api_key="  "), MeterRegistry())

        assert exc_info.value.setting == "newrelic_api_key"

    def test_malformed_uri(self):
        config = Config(newrelic_account_id="12345", newrelic_api_key="key", newrelic_uri="not a uri")

        with pytest.raises(MalformedEndpointError):
            NewRelicExporter(config, MeterRegistry())

    def test_switches_registry_to_camel_case(self, config):
        registry = MeterRegistry()

        NewRelicExporter(config, registry)

        assert registry.naming_convention is NamingConvention.CAMEL_CASE

    def test_default_publisher_uses_configured_timeouts(self, config):
        exporter = NewRelicExporter(config, MeterRegistry())

        assert exporter.publisher.api_key == "insert-key"
        assert exporter.publisher.timeout.connect == 2.0
        assert exporter.publisher.timeout.read == 5.0


class TestExportCycle:
    """Test one publish() call end to end against a mock endpoint"""

    def setup_method(self):
        self.registry = MeterRegistry()

    def test_batches_respect_protocol_max(self):
        config = Config(newrelic_account_id="12345", newrelic_api_key="key", newrelic_batch_size=1500)
        for i in range(1800):
            self.registry.gauge(f"gauge.{i}", lambda: 1)
        transport = SequenceTransport()
        exporter = make_exporter(config, self.registry, transport)

        exporter.publish()

        assert transport.batch_sizes() == [1000, 800]
        assert str(transport.requests[0].url) == "https://insights-collector.newrelic.com/v1/accounts/12345/events"
        assert exporter.events_sent == 1800
        assert exporter.is_healthy() is True

    def test_events_are_camel_cased_and_tagged(self, config):
        config.newrelic_event_tags_str = "environment=prod"
        self.registry.timer("http.server.requests", {"http.method": "GET"}).record(0.5)
        transport = SequenceTransport()
        exporter = make_exporter(config, self.registry, transport)

        exporter.publish()

        events = json.loads(transport.requests[0].content)
        assert [event["statistic"] for event in events] == ["count", "sum", "avg", "max"]
        assert events[1] == {
            "eventType": "httpServerRequests",
            "statistic": "sum",
            "value": 0.5,
            "httpMethod": "GET",
            "environment": "prod",
        }

    def test_failed_batch_does_not_cancel_remaining(self):
        config = Config(newrelic_account_id="12345", newrelic_api_key="key", newrelic_batch_size=2)
        for i in range(5):
            self.registry.counter(f"counter.{i}")
        transport = SequenceTransport(500)
        exporter = make_exporter(config, self.registry, transport)

        with patch("metrics.exporters.insights.logger") as mock_logger:
            exporter.publish()

        assert transport.batch_sizes() == [2, 2, 1]
        assert mock_logger.error.call_args.kwargs["body"] == "server error"
        assert exporter.events_sent == 3
        assert exporter.failed_batches == 1
        assert exporter.is_healthy() is False

    def test_transport_failures_do_not_escape(self, config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        self.registry.counter("requests")
        publisher = InsightsPublisher("insert-key", config.newrelic_connect_timeout, config.newrelic_read_timeout,
                                      transport=httpx.MockTransport(handler))
        exporter = NewRelicExporter(config, self.registry, publisher)

        exporter.publish()

        assert exporter.failed_batches == 1
        assert exporter.cycles == 1

    def test_empty_registry_skips_publishing(self, config):
        transport = SequenceTransport()
        exporter = make_exporter(config, self.registry, transport)

        exporter.publish()

        assert transport.requests == []
        assert exporter.cycles == 1

    def test_unexpected_error_is_logged_not_raised(self, config):
        transport = SequenceTransport()
        exporter = make_exporter(config, self.registry, transport)

        with patch.object(self.registry, "get_meters", side_effect=RuntimeError("registry broken")), \
                patch("metrics.exporters.newrelic.logger") as mock_logger:
            exporter.publish()

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["error"] == "registry broken"
        assert exporter.is_healthy() is False
        assert transport.requests == []

    def test_malformed_endpoint_aborts_cycle(self, config):
        self.registry.counter("requests")
        transport = SequenceTransport()
        exporter = make_exporter(config, self.registry, transport)
        config.newrelic_uri = "ftp://insights.example.com"

        with pytest.raises(MalformedEndpointError):
            exporter.publish()

        assert transport.requests == []
        assert exporter.cycles == 0

    def test_overlapping_cycle_is_skipped(self, config):
        self.registry.counter("requests")
        transport = SequenceTransport()
        exporter = make_exporter(config, self.registry, transport)

        exporter._publish_lock.acquire()
        try:
            with patch("metrics.exporters.newrelic.logger") as mock_logger:
                exporter.publish()
        finally:
            exporter._publish_lock.release()

        assert transport.requests == []
        assert mock_logger.warning.call_args.kwargs["event_type"] == "export_cycle_skipped"

        exporter.publish()
        assert len(transport.requests) == 1

    def test_each_cycle_reports_one_interval(self, config):
        timer = self.registry.timer("work")
        counter = self.registry.counter("jobs")
        transport = SequenceTransport()
        exporter = make_exporter(config, self.registry, transport)

        timer.record(4.0)
        counter.increment()
        exporter.publish()
        timer.record(0.1)
        counter.increment()
        exporter.publish()

        assert len(transport.requests) == 2
        first, second = (
            {(event["eventType"], event["statistic"]): event["value"] for event in json.loads(request.content)}
            for request in transport.requests
        )
        assert first[("work", "max")] == 4.0
        assert first[("jobs", "count")] == 1.0
        assert second == {
            ("work", "count"): 1.0,
            ("work", "sum"): 0.1,
            ("work", "avg"): 0.1,
            ("work", "max"): 0.1,
            ("jobs", "count"): 1.0,
        }

    def test_idle_interval_reports_zeros(self, config):
        timer = self.registry.timer("work")
        transport = SequenceTransport()
        exporter = make_exporter(config, self.registry, transport)

        timer.record(2.0)
        exporter.publish()
        exporter.publish()

        events = json.loads(transport.requests[1].content)
        assert [event["value"] for event in events] == [0.0, 0.0, 0.0, 0.0]

    def test_get_status(self, config):
        self.registry.counter("requests")
        exporter = make_exporter(config, self.registry, SequenceTransport())

        exporter.publish()
        status = exporter.get_status()

        assert status["cycles"] == 1
        assert status["events_sent"] == 1
        assert status["failed_batches"] == 0
        assert status["batch_size"] == 1000
        assert status["last_publish_time"] is not None
