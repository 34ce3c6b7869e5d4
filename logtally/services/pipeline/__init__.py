from .driver import BatchReport, BatchState, PipelineDriver, logging_observer

__all__ = ["BatchReport", "BatchState", "PipelineDriver", "logging_observer"]
