"""In-process meters, naming conventions and the meter registry"""
from .exceptions import ConfigurationError, MalformedEndpointError, MissingConfigurationError
from .models import EventRecord, Measurement, MeterId, MeterType, Statistic, Tag, TimeUnit
from .naming import NamingConvention
from .registry import MeterRegistry

__all__ = [
    'ConfigurationError',
    'MalformedEndpointError',
    'MissingConfigurationError',
    'EventRecord',
    'Measurement',
    'MeterId',
    'MeterType',
    'Statistic',
    'Tag',
    'TimeUnit',
    'NamingConvention',
    'MeterRegistry'
]
