from .writer import CounterMergeWriter, MergeResult

__all__ = ["CounterMergeWriter", "MergeResult"]
