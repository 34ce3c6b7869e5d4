from .service import BatchAggregator, minute_bucket

__all__ = ["BatchAggregator", "minute_bucket"]
