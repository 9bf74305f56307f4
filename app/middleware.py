"""Request logging middleware for the exporter's HTTP surface"""
import time
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from logging_config import get_logger


logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request and reports its processing time in X-Process-Time"""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.time()
        client_ip = request.client.host if request.client else None

        logger.info(
            "HTTP request started",
            method=request.method,
            path=request.url.path,
            client_ip=client_ip,
            event_type="http_request_start"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "HTTP request failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                process_time_seconds=round(time.time() - start_time, 3),
                client_ip=client_ip,
                event_type="http_request_error",
                exc_info=True
            )
            raise

        process_time = round(time.time() - start_time, 3)
        logger.info(
            "HTTP request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time_seconds=process_time,
            client_ip=client_ip,
            event_type="http_request_complete"
        )

        response.headers["X-Process-Time"] = str(process_time)
        return response
