"""Application factory for creating Litestar app instance."""

from __future__ import annotations

from litestar import Litestar
from litestar.di import Provide
from litestar.openapi import OpenAPIConfig
from litestar.middleware.logging import LoggingMiddlewareConfig

from logtally.api.dependencies import provide_log_source, provide_pipelines
from logtally.config.settings import get_settings
from logtally.server import plugins
from logtally.server.lifecycle import on_startup, on_shutdown
from logtally.server.routes import get_route_handlers


def create_app() -> Litestar:
    """Create and configure the Litestar application.

    The app owns the pipeline lifecycle: startup opens the GeoIP database,
    installs the counter schema and starts the tail source and scheduler.

    Returns:
        Litestar: Configured application instance
    """
    settings = get_settings()

    openapi_config = OpenAPIConfig(
        title=settings.name,
        version=settings.version,
        description=settings.description,
    )

    return Litestar(
        debug=settings.debug,
        route_handlers=get_route_handlers(),
        on_startup=[on_startup],
        on_shutdown=[on_shutdown],
        plugins=[plugins.sqlalchemy_plugin],
        dependencies={
            "pipelines": Provide(provide_pipelines, sync_to_thread=False),
            "log_source": Provide(provide_log_source, sync_to_thread=False),
        },
        logging_config=plugins.logging_config,
        openapi_config=openapi_config,
        middleware=[LoggingMiddlewareConfig().middleware],
    )
