"""Exporter error types"""


class ConfigurationError(ValueError):
    """Fatal configuration problem, raised instead of logged"""


class MissingConfigurationError(ConfigurationError):
    """A required setting is unset or blank"""

    def __init__(self, setting: str):
        super().__init__(f"{setting} must be set to publish metrics to New Relic")
        self.setting = setting


class MalformedEndpointError(ConfigurationError):
    """The Insights endpoint URL cannot be built from the configured URI"""

    def __init__(self, endpoint: str, reason: str):
        super().__init__(
            f"malformed New Relic insights endpoint {endpoint!r} ({reason}) -- see the 'newrelic_uri' configuration"
        )
        self.endpoint = endpoint
        self.reason = reason
