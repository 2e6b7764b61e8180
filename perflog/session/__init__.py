"""Session tracking, storage, timing and formatting."""

from .device import capture_device_context
from .errors import OperationTimeout, PerformanceLoggerError, SessionNotFound
from .formatter import format_logs
from .models import (
    DeviceContext,
    ImageMetadata,
    LogEntry,
    LogSession,
    ModelInfo,
    StorageInfo,
    ThermalState,
    split_operation_name,
)
from .registry import SessionRegistry
from .store import SessionStore
from .timing import BatchOperation, OperationTimer, TimingToken

__all__ = [
    "BatchOperation",
    "DeviceContext",
    "ImageMetadata",
    "LogEntry",
    "LogSession",
    "ModelInfo",
    "OperationTimeout",
    "OperationTimer",
    "PerformanceLoggerError",
    "SessionNotFound",
    "SessionRegistry",
    "SessionStore",
    "StorageInfo",
    "ThermalState",
    "TimingToken",
    "capture_device_context",
    "format_logs",
    "split_operation_name",
]
