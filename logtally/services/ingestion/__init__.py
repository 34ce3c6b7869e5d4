from .source import LogTailSource

__all__ = ["LogTailSource"]
