"""Services layer - parsing, enrichment, aggregation and merging."""
from .aggregation import BatchAggregator
from .geo import GeoResolver
from .ingestion import LogTailSource
from .logparser import EventParser
from .merge import CounterMergeWriter
from .pipeline import PipelineDriver

__all__ = [
    "BatchAggregator",
    "CounterMergeWriter",
    "EventParser",
    "GeoResolver",
    "LogTailSource",
    "PipelineDriver",
]
