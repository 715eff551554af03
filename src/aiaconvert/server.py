"""
HTTP Server
FastAPI entry point: upload an .aia archive, download the Android project.
"""

import asyncio
import time
from contextlib import asynccontextmanager

import msgspec
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from injector import Injector
from pydantic import ValidationError as PydanticValidationError
from returns.result import Failure
from prometheus_client import CONTENT_TYPE_LATEST

from . import __version__
from .assembler import read_archive_async, zip_project
from .converter import ProjectConverter
from .core import (
    ArchiveError,
    ConversionTimeout,
    ConvertRequest,
    LogContext,
    Settings,
    ValidationError,
    configure_logging,
    create_container,
    get_logger,
    get_settings,
)
from .core.tracing import init_tracer
from .monitoring import MetricsCollector

logger = get_logger(__name__)

VERSION = __version__


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(settings: Settings | None = None, container: Injector | None = None) -> FastAPI:
    """Build the application; tests pass their own settings or container."""
    settings = settings or get_settings()
    container = container or create_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Resolve dependencies on startup."""
        app.state.converter = container.get(ProjectConverter)
        app.state.metrics = container.get(MetricsCollector)
        app.state.started_at = time.time()
        logger.info("service_ready", host=settings.http_host, port=settings.http_port)
        yield
        logger.info("service_stopped")

    app = FastAPI(
        title="App Inventor Converter",
        description="Converts App Inventor projects into Android Studio projects",
        version=VERSION,
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health():
        """Health check"""
        return {
            "status": "healthy",
            "version": VERSION,
            "uptime_seconds": round(time.time() - app.state.started_at, 3),
        }

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics"""
        return Response(content=app.state.metrics.get_metrics(), media_type=CONTENT_TYPE_LATEST)

    @app.post("/convert")
    async def convert(request: Request):
        """
        Convert a base64 encoded .aia archive.

        Body: {"file": "<base64 .aia>", "projectName": "MyApp"}
        Returns the generated project as application/zip.
        """
        metrics: MetricsCollector = app.state.metrics
        body = await request.body()
        if not body:
            return _error(405, "Method not allowed or missing request body.")

        try:
            payload = ConvertRequest.model_validate(msgspec.json.decode(body))
            data = payload.archive_bytes()
        except msgspec.DecodeError:
            return _error(400, "Request body is not valid JSON.")
        except PydanticValidationError as e:
            missing_file = any(err["loc"] == ("file",) for err in e.errors())
            return _error(400, "Missing .aia file." if missing_file else f"Invalid request: {e}")
        except ValidationError as e:
            return _error(400, str(e))

        if len(data) > settings.max_upload_bytes:
            return _error(400, f"Archive exceeds maximum size of {settings.max_upload_bytes} bytes.")

        project_name = payload.project_name
        converter: ProjectConverter = app.state.converter
        with LogContext(project=project_name):
            try:
                archive = await read_archive_async(
                    data,
                    settings.screen_name,
                    max_descriptor_size=settings.max_descriptor_size,
                    max_total_size=settings.max_upload_bytes,
                )
                loop = asyncio.get_running_loop()
                result = await loop.run_in_executor(None, converter.convert, archive, project_name)
            except ArchiveError as e:
                metrics.record_error("archive_error", "convert")
                return _error(400, str(e))
            except ConversionTimeout as e:
                metrics.record_error("timeout", "convert")
                return _error(504, f"Conversion timed out: {e}")
            except Exception as e:
                logger.exception("conversion_failed", error=str(e))
                metrics.record_error(type(e).__name__, "convert")
                return _error(500, f"Internal server error: {e}")

            if isinstance(result, Failure):
                failure = result.failure()
                return _error(422, f"Screen {failure.screen} could not be converted: {failure.reason}")

            project = result.unwrap()
            content = zip_project(project.files)

        return Response(
            content=content,
            media_type="application/zip",
            headers={
                "Content-Disposition": f'attachment; filename="{project.name}.zip"',
                "X-Conversion-Diagnostics": str(len(project.diagnostics)),
            },
        )

    return app


def serve(host: str | None = None, port: int | None = None) -> None:
    """Run the HTTP server with uvicorn."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.json_logs)
    init_tracer("aiaconvert")
    uvicorn.run(
        create_app(settings),
        host=host or settings.http_host,
        port=port or settings.http_port,
        log_config=None,
    )


if __name__ == "__main__":
    serve()
