"""Shared dependency providers for API layer."""
from __future__ import annotations

from litestar import Request

from logtally.services.ingestion import LogTailSource
from logtally.services.pipeline import PipelineDriver


def provide_pipelines(request: Request) -> list[PipelineDriver]:
    """Provide the pipeline drivers from app state.

    Returns an empty list if the pipelines were never started.
    """
    return getattr(request.app.state, "pipelines", None) or []


def provide_log_source(request: Request) -> LogTailSource | None:
    """Provide the LogTailSource from app state, or None if not started."""
    return getattr(request.app.state, "log_source", None)
