"""Micro-batch access-log aggregation into durable status, volume and location counters."""
