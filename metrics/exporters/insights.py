"""New Relic Insights insert API publisher"""
import json
from datetime import timedelta
from typing import Optional, Sequence
import httpx
from metrics.exceptions import MalformedEndpointError
from metrics.models import EventRecord
from logging_config import get_logger


logger = get_logger(__name__)


def insights_endpoint(uri: str, account_id: str) -> httpx.URL:
    """Build the events endpoint for an account, raising MalformedEndpointError if unusable"""
    endpoint = f"{uri.rstrip('/')}/v1/accounts/{account_id}/events"
    try:
        url = httpx.URL(endpoint)
    except httpx.InvalidURL as e:
        raise MalformedEndpointError(endpoint, str(e)) from e

    if url.scheme not in ("http", "https"):
        raise MalformedEndpointError(endpoint, "scheme must be http or https")
    if not url.host:
        raise MalformedEndpointError(endpoint, "missing host")
    return url


def serialize_event(event: EventRecord) -> str:
    """Render one event as a compact JSON object"""
    return json.dumps(event.to_dict(), separators=(",", ":"))


def serialize_batch(batch: Sequence[EventRecord]) -> str:
    """Render a batch as one flat JSON array"""
    return "[" + ",".join(serialize_event(event) for event in batch) + "]"


class InsightsPublisher:
    """Posts event batches to the Insights insert API.

    Each send opens a fresh client and makes exactly one attempt. Failures
    are logged and reported through the return value, never raised.
    """

    def __init__(self, api_key: str, connect_timeout: timedelta, read_timeout: timedelta,
                 transport: Optional[httpx.BaseTransport] = None):
        self.api_key = api_key
        self.timeout = httpx.Timeout(read_timeout.total_seconds(), connect=connect_timeout.total_seconds())
        self.transport = transport

    def send(self, url: httpx.URL, batch: Sequence[EventRecord]) -> bool:
        """POST one batch, returning True when the API accepted it"""
        client = None
        try:
            client = httpx.Client(timeout=self.timeout, transport=self.transport)
            response = client.post(
                url,
                content=serialize_batch(batch).encode("utf-8"),
                headers={
                    "Content-Type": "application/json",
                    "X-Insert-Key": self.api_key,
                }
            )
            status = response.status_code

            if 200 <= status < 300:
                logger.info(
                    "Successfully sent events to New Relic",
                    events_count=len(batch),
                    event_type="newrelic_publish"
                )
                return True

            if status >= 400:
                logger.error(
                    "Failed to send metrics",
                    status_code=status,
                    body=response.text,
                    events_count=len(batch),
                    event_type="newrelic_publish_error"
                )
            else:
                logger.error(
                    "Failed to send metrics",
                    status_code=status,
                    events_count=len(batch),
                    event_type="newrelic_publish_error"
                )
            return False

        except httpx.TransportError as e:
            logger.warning(
                "Failed to send metrics",
                error=str(e),
                error_type=type(e).__name__,
                endpoint=str(url),
                event_type="newrelic_transport_error"
            )
            return False
        except Exception as e:
            logger.warning(
                "Failed to send metrics",
                error=str(e),
                error_type=type(e).__name__,
                endpoint=str(url),
                event_type="newrelic_publish_error",
                exc_info=True
            )
            return False
        finally:
            self._quietly_close(client)

    @staticmethod
    def _quietly_close(client: Optional[httpx.Client]) -> None:
        if client is None:
            return
        try:
            client.close()
        except Exception:
            pass
