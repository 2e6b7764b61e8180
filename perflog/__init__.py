"""perflog - concurrent, bounded performance session logging."""

from .services.performance_logger import PerformanceLogger
from .session import (
    BatchOperation,
    DeviceContext,
    ImageMetadata,
    LogEntry,
    LogSession,
    ModelInfo,
    OperationTimeout,
    PerformanceLoggerError,
    SessionNotFound,
    StorageInfo,
    ThermalState,
    TimingToken,
    format_logs,
)

__all__ = [
    "BatchOperation",
    "DeviceContext",
    "ImageMetadata",
    "LogEntry",
    "LogSession",
    "ModelInfo",
    "OperationTimeout",
    "PerformanceLogger",
    "PerformanceLoggerError",
    "SessionNotFound",
    "StorageInfo",
    "ThermalState",
    "TimingToken",
    "format_logs",
]
