"""Log parser module - parsing only, no database operations."""
from .logparser import EventParser
from .schemas import LogEvent, Location

__all__ = ["EventParser", "LogEvent", "Location"]
