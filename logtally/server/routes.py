"""Central route registration."""
from litestar.types import ControllerRouterHandler

from logtally.api.v1.stats import stats


def get_route_handlers() -> list[ControllerRouterHandler]:
    """Get all route handlers for the application."""
    return [
        stats,
    ]
