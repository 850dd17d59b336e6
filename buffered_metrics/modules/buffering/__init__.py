"""Buffering module: the BufferedMetricsLogger recording API."""

from .buffered_logger import BufferedMetricsLogger

__all__ = ["BufferedMetricsLogger"]
