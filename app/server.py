"""FastAPI host that schedules export cycles and reports exporter health"""
import asyncio
import os
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional
from fastapi import FastAPI, HTTPException
from config import Config
from app.middleware import RequestLoggingMiddleware
from metrics.exceptions import ConfigurationError
from metrics.exporters.insights import InsightsPublisher
from metrics.exporters.newrelic import NewRelicExporter
from metrics.registry import MeterRegistry
from logging_config import get_logger, log_error


logger = get_logger(__name__)


class MetricsServer:
    """FastAPI server owning the fixed-interval export schedule"""

    def __init__(self, config: Config, registry: Optional[MeterRegistry] = None,
                 publisher: Optional[InsightsPublisher] = None):
        self.config = config
        self.app = FastAPI(
            title="New Relic Metrics Exporter",
            version=config.service_version,
            docs_url=None,
            redoc_url=None,
            openapi_url=None
        )
        self.registry = registry or MeterRegistry()

        # Raises on missing credentials before anything is scheduled
        self.exporter = NewRelicExporter(config, self.registry, publisher)

        # One worker so cycles never overlap
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="newrelic_publish")
        self.export_timer = self.registry.timer("newrelic.export", description="Export cycle duration")

        self.start_time = time.time()
        self.export_errors = 0
        self.export_task = None

        self._setup_middleware()
        self._setup_routes()
        self._setup_events()

    def _setup_middleware(self):
        """Setup FastAPI middleware"""
        if self.config.enable_request_logging:
            self.app.add_middleware(RequestLoggingMiddleware)

    def _setup_routes(self):
        """Setup FastAPI routes"""

        @self.app.get('/health')
        def health_check():
            """Health check endpoint"""
            step = self.config.newrelic_step.total_seconds()
            reference = self.exporter.last_publish_time or self.start_time
            age = time.time() - reference
            is_healthy = not self.config.newrelic_enabled or age < step * 2

            health_data = {
                "status": "healthy" if is_healthy else "unhealthy",
                "last_publish_seconds_ago": round(age, 1) if self.exporter.last_publish_time else None,
                "step_seconds": step,
                "total_cycles": self.exporter.cycles,
                "export_errors": self.export_errors,
                "exporter_healthy": self.exporter.is_healthy()
            }

            if not is_healthy:
                raise HTTPException(status_code=503, detail=health_data)

            return health_data

        @self.app.get('/status')
        def get_status():
            """Detailed status information"""
            return {
                "service": {
                    **self.config.get_resource_attributes(),
                    "uptime_seconds": round(time.time() - self.start_time, 1),
                    "hostname": os.uname().nodename
                },
                "exporter": self.exporter.get_status(),
                "meters": {
                    "count": len(self.registry.get_meters()),
                    "names": self.registry.list_meters()
                },
                "export_errors": self.export_errors
            }

        @self.app.post('/publish')
        async def manual_publish():
            """Manually trigger one export cycle"""
            try:
                await self._publish()
            except ConfigurationError as e:
                log_error(logger, e, {"component": "manual_publish", "endpoint": "/publish"})
                raise HTTPException(status_code=500, detail={"error": str(e)})
            return {
                "success": True,
                "message": "Export cycle triggered",
                "cycles": self.exporter.cycles
            }

    def _setup_events(self):
        """Setup FastAPI startup/shutdown events"""

        @self.app.on_event("startup")
        async def startup_event():
            self.start_time = time.time()
            logger.info(
                "Application startup initiated",
                service_name=self.config.service_name,
                service_version=self.config.service_version,
                step_seconds=self.config.newrelic_step.total_seconds(),
                newrelic_enabled=self.config.newrelic_enabled,
                event_type="server_startup"
            )

            if self.config.newrelic_enabled:
                self.export_task = asyncio.create_task(self._export_loop())

        @self.app.on_event("shutdown")
        async def shutdown_event():
            logger.info("Shutting down metrics exporter", event_type="server_shutdown")

            if self.export_task:
                self.export_task.cancel()
                try:
                    await self.export_task
                except asyncio.CancelledError:
                    pass

                # Flush what accumulated since the last tick
                try:
                    await self._publish()
                except Exception as e:
                    log_error(logger, e, {"component": "final_publish"})

            self.exporter.shutdown()
            self._executor.shutdown(wait=True)

    async def _export_loop(self):
        """Background loop running one export cycle per step"""
        interval = self.config.newrelic_step.total_seconds()
        while True:
            try:
                await asyncio.sleep(interval)
                await self._publish()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.export_errors += 1
                log_error(logger, e, {"component": "export_loop", "export_errors": self.export_errors})

    async def _publish(self):
        """Run one export cycle on the publish thread"""
        loop = asyncio.get_running_loop()
        with self.export_timer.time():
            await loop.run_in_executor(self._executor, self.exporter.publish)

    def get_app(self) -> FastAPI:
        """Get the FastAPI application"""
        return self.app
