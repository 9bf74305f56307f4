"""Configuration for the New Relic Insights metrics exporter"""
from datetime import timedelta
from pathlib import Path
from typing import Dict, Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Exporter configuration with Pydantic validation and environment-based settings"""

    # New Relic Insights settings
    newrelic_uri: str = Field(default="https://insights-collector.newrelic.com", description="Insights API base URI")
    newrelic_account_id: Optional[str] = Field(default=None, description="New Relic account ID (required by the exporter)")
    newrelic_api_key: Optional[str] = Field(default=None, description="Insights insert key (required by the exporter)")
    newrelic_batch_size: int = Field(default=10000, ge=1, description="Max events per request (capped at 1000)")
    newrelic_connect_timeout: timedelta = Field(default=timedelta(seconds=1), description="HTTP connect timeout")
    newrelic_read_timeout: timedelta = Field(default=timedelta(seconds=10), description="HTTP read timeout")
    newrelic_step: timedelta = Field(default=timedelta(minutes=1), description="Export interval")
    newrelic_enabled: bool = Field(default=True, description="Schedule periodic exports")
    newrelic_event_tags_str: str = Field(default="", description="Extra event tags (key=value, comma-separated)")

    # Server settings (health and status only)
    metrics_port: int = Field(default=9100, ge=1, le=65535, description="Health check server port")
    metrics_host: str = Field(default="0.0.0.0", description="Health check server host")

    # Service settings
    service_name: str = Field(default="newrelic-metrics-exporter", description="Service name")
    service_version: str = Field(default="1.0.0", description="Service version")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_file: Optional[Path] = Field(default=None, description="Log file (stdout only when unset)")
    enable_request_logging: bool = Field(default=True, description="Enable HTTP request logging")

    class Config:
        env_prefix = ""
        case_sensitive = False

    @validator('newrelic_connect_timeout', 'newrelic_read_timeout', 'newrelic_step')
    def validate_positive_duration(cls, v):
        if v.total_seconds() <= 0:
            raise ValueError("duration must be positive")
        return v

    @validator('log_level')
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level

    @validator('log_file')
    def ensure_log_directory(cls, v):
        if isinstance(v, Path):
            v.parent.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def event_tags(self) -> Dict[str, str]:
        """Ad-hoc tags added to every event, in declaration order"""
        tags = {}
        for pair in self.newrelic_event_tags_str.split(','):
            if '=' in pair:
                key, value = pair.split('=', 1)
                if key.strip():
                    tags[key.strip()] = value.strip()
        return tags

    def get_resource_attributes(self) -> Dict[str, str]:
        """Get service identification attributes"""
        return {
            "service.name": self.service_name,
            "service.version": self.service_version,
        }
