"""Stats API endpoint for pipeline health."""
from __future__ import annotations

from typing import Any

from litestar import get

from logtally.services.ingestion import LogTailSource
from logtally.services.pipeline import PipelineDriver


@get("/stats")
async def stats(pipelines: list[PipelineDriver], log_source: LogTailSource | None) -> dict[str, Any]:
    """Get tail source and per-pipeline statistics.

    ``pipelines`` and ``log_source`` are provided at application level from
    app state.

    Returns:
        Dictionary with source counters and one entry per pipeline.
        Returns zeros if the pipelines are not running.
    """
    if log_source is None:
        source_stats: dict[str, Any] = {
            "total_lines_read": 0,
            "buffered_lines": 0,
            "total_batches": 0,
            "rotations": 0,
            "is_running": False,
        }
    else:
        source_stats = {
            "total_lines_read": log_source.total_lines_read,
            "buffered_lines": log_source.buffered_lines,
            "total_batches": log_source.total_batches,
            "rotations": log_source.rotations,
            "is_running": log_source.is_running,
        }

    return {
        "source": source_stats,
        "pipelines": [driver.stats() for driver in pipelines],
    }
