"""Data models for performance sessions."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
import math
import re
from typing import Any, Dict, Optional, Tuple
import uuid


# Outcome markers appended to an operation name
FAILED = "failed"
CONDITION_FAILED = "condition failed"
TIMEOUT = "timeout"
CANCELLED = "cancelled"

OUTCOMES = (FAILED, CONDITION_FAILED, TIMEOUT, CANCELLED)

_OUTCOME_PATTERN = re.compile(
    r"^(?P<base>.*) \((?P<outcome>" + "|".join(OUTCOMES) + r")\)$", re.DOTALL
)


def mark_operation(operation: str, outcome: str) -> str:
    """Return the operation name tagged with an outcome marker."""
    return f"{operation} ({outcome})"


def split_operation_name(operation: str) -> Tuple[str, Optional[str]]:
    """Split an operation name into its base name and outcome marker.

    Args:
        operation: Logged operation name, e.g. "Extract (failed)"

    Returns:
        Tuple of (base_name, outcome); outcome is None for successful entries
    """
    match = _OUTCOME_PATTERN.match(operation)
    if not match:
        return operation, None
    return match.group("base"), match.group("outcome")


@dataclass(frozen=True)
class ImageMetadata:
    """Information about image data sent to an AI/OCR backend."""

    original_width: float
    original_height: float
    processed_width: float
    processed_height: float
    original_file_size_bytes: int
    processed_file_size_bytes: int
    image_format: str  # "HEIC", "JPEG", "PNG", etc.
    compression_quality: Optional[float] = None

    @property
    def original_pixel_count(self) -> int:
        return int(self.original_width * self.original_height)

    @property
    def processed_pixel_count(self) -> int:
        return int(self.processed_width * self.processed_height)

    @property
    def compression_ratio(self) -> float:
        """Processed size as a fraction of the original size."""
        if self.original_file_size_bytes <= 0:
            return 0.0
        return self.processed_file_size_bytes / self.original_file_size_bytes

    @property
    def resolution_reduction_ratio(self) -> float:
        """Processed pixel count as a fraction of the original pixel count."""
        if self.original_pixel_count <= 0:
            return 0.0
        return self.processed_pixel_count / self.original_pixel_count

    @property
    def was_compressed(self) -> bool:
        return self.original_file_size_bytes != self.processed_file_size_bytes

    @property
    def was_resized(self) -> bool:
        return (
            self.original_width != self.processed_width
            or self.original_height != self.processed_height
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "original_width": self.original_width,
            "original_height": self.original_height,
            "processed_width": self.processed_width,
            "processed_height": self.processed_height,
            "original_file_size_bytes": self.original_file_size_bytes,
            "processed_file_size_bytes": self.processed_file_size_bytes,
            "image_format": self.image_format,
            "compression_quality": self.compression_quality,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageMetadata":
        """Create from dictionary."""
        return cls(
            original_width=float(data["original_width"]),
            original_height=float(data["original_height"]),
            processed_width=float(data["processed_width"]),
            processed_height=float(data["processed_height"]),
            original_file_size_bytes=int(data["original_file_size_bytes"]),
            processed_file_size_bytes=int(data["processed_file_size_bytes"]),
            image_format=str(data["image_format"]),
            compression_quality=data.get("compression_quality"),
        )


@dataclass(frozen=True)
class ModelInfo:
    """Identifies the backend and model that serviced an operation."""

    service_name: str  # "Gemini" or "Vision"
    model_name: str  # e.g. "gemini-2.5-flash"
    # Excluded from hashing; instances with a configuration stay hashable
    configuration: Optional[Dict[str, str]] = field(default=None, hash=False)
    image_metadata: Optional[ImageMetadata] = None

    def __post_init__(self):
        if self.configuration is not None:
            # Configuration is a flat string-to-string mapping
            object.__setattr__(
                self,
                "configuration",
                {str(k): str(v) for k, v in self.configuration.items()},
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "service_name": self.service_name,
            "model_name": self.model_name,
            "configuration": dict(self.configuration) if self.configuration else None,
            "image_metadata": (
                self.image_metadata.to_dict() if self.image_metadata else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelInfo":
        """Create from dictionary."""
        image_data = data.get("image_metadata")
        return cls(
            service_name=data["service_name"],
            model_name=data["model_name"],
            configuration=data.get("configuration"),
            image_metadata=ImageMetadata.from_dict(image_data) if image_data else None,
        )


class ThermalState(Enum):
    """Thermal state reported by the device."""

    NORMAL = "Normal"
    FAIR = "Fair"
    SERIOUS = "Serious"
    CRITICAL = "Critical"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class DeviceContext:
    """Snapshot of device and app conditions."""

    device_model: str
    os_version: str
    app_version: str
    timestamp: datetime
    memory_pressure: str = "Unknown"
    battery_level: float = -1.0  # -1 means unknown
    thermal_state: ThermalState = ThermalState.UNKNOWN

    @property
    def battery_known(self) -> bool:
        return self.battery_level >= 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "device_model": self.device_model,
            "os_version": self.os_version,
            "app_version": self.app_version,
            "timestamp": self.timestamp.isoformat(),
            "memory_pressure": self.memory_pressure,
            "battery_level": self.battery_level,
            "thermal_state": self.thermal_state.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeviceContext":
        """Create from dictionary."""
        try:
            thermal_state = ThermalState(data.get("thermal_state", "Unknown"))
        except ValueError:
            thermal_state = ThermalState.UNKNOWN
        return cls(
            device_model=data["device_model"],
            os_version=data["os_version"],
            app_version=data["app_version"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            memory_pressure=data.get("memory_pressure", "Unknown"),
            battery_level=float(data.get("battery_level", -1.0)),
            thermal_state=thermal_state,
        )


@dataclass(frozen=True)
class LogEntry:
    """A single timed operation inside a session."""

    operation: str
    start_time: datetime
    duration: float  # seconds
    device_context: DeviceContext
    model_info: Optional[ModelInfo] = None
    entry_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def base_operation(self) -> str:
        return split_operation_name(self.operation)[0]

    @property
    def outcome(self) -> Optional[str]:
        return split_operation_name(self.operation)[1]

    @property
    def succeeded(self) -> bool:
        return self.outcome is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "entry_id": self.entry_id,
            "operation": self.operation,
            "start_time": self.start_time.isoformat(),
            "duration": self.duration,
            "model_info": self.model_info.to_dict() if self.model_info else None,
            "device_context": self.device_context.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogEntry":
        """Create from dictionary.

        Raises:
            ValueError: If the operation name is blank or the duration is
                negative or not finite
        """
        operation = data["operation"]
        if not isinstance(operation, str) or not operation.strip():
            raise ValueError(f"Invalid operation name: {operation!r}")
        duration = float(data["duration"])
        if not math.isfinite(duration) or duration < 0:
            raise ValueError(f"Invalid duration {duration} for operation '{operation}'")
        model_data = data.get("model_info")
        return cls(
            entry_id=data["entry_id"],
            operation=operation,
            start_time=datetime.fromisoformat(data["start_time"]),
            duration=duration,
            model_info=ModelInfo.from_dict(model_data) if model_data else None,
            device_context=DeviceContext.from_dict(data["device_context"]),
        )


@dataclass(frozen=True)
class LogSession:
    """A group of related log entries representing one complete operation.

    Sessions are immutable values: appending an entry or completing the
    session returns a new instance. The registry swaps instances under its
    lock, so readers always see a consistent snapshot.
    """

    device_context: DeviceContext
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    was_successful: Optional[bool] = None
    entries: Tuple[LogEntry, ...] = ()
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None

    @property
    def total_duration(self) -> Optional[float]:
        """Wall-clock duration in seconds, None while the session is active."""
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    @property
    def operations_duration(self) -> float:
        """Sum of all entry durations."""
        return sum(entry.duration for entry in self.entries)

    def with_entry(self, entry: LogEntry) -> "LogSession":
        """Return a copy of this session with the entry appended.

        Raises:
            ValueError: If the session is already completed
        """
        if self.is_completed:
            raise ValueError(f"Session {self.session_id} is completed")
        return replace(self, entries=self.entries + (entry,))

    def completed(
        self, end_time: Optional[datetime] = None, successful: bool = True
    ) -> "LogSession":
        """Return a completed copy of this session.

        Completing an already completed session returns it unchanged.
        """
        if self.is_completed:
            return self
        return replace(
            self,
            end_time=end_time or datetime.now(),
            was_successful=successful,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "session_id": self.session_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "was_successful": self.was_successful,
            "entries": [entry.to_dict() for entry in self.entries],
            "device_context": self.device_context.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogSession":
        """Create from dictionary."""
        end_time = data.get("end_time")
        return cls(
            session_id=data["session_id"],
            start_time=datetime.fromisoformat(data["start_time"]),
            end_time=datetime.fromisoformat(end_time) if end_time else None,
            was_successful=data.get("was_successful"),
            entries=tuple(LogEntry.from_dict(entry) for entry in data["entries"]),
            device_context=DeviceContext.from_dict(data["device_context"]),
        )


@dataclass(frozen=True)
class StorageInfo:
    """Storage usage of the session store."""

    session_count: int
    estimated_size_bytes: int
    max_size_bytes: int
