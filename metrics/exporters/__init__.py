"""New Relic Insights export pipeline"""
from .batching import PROTOCOL_MAX, effective_batch_size, partition
from .events import EventEncoder
from .insights import InsightsPublisher, insights_endpoint, serialize_batch
from .newrelic import NewRelicExporter

__all__ = [
    'PROTOCOL_MAX',
    'effective_batch_size',
    'partition',
    'EventEncoder',
    'InsightsPublisher',
    'insights_endpoint',
    'serialize_batch',
    'NewRelicExporter'
]
