"""Service layer exposed to instrumented code and consumers."""

from .performance_logger import PerformanceLogger

__all__ = ["PerformanceLogger"]
