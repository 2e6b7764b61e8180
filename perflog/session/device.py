"""Device context capture."""

import logging
import platform
import sys
from datetime import datetime
from importlib import metadata

from .models import DeviceContext, ThermalState

LOGGER = logging.getLogger(__name__)

UNKNOWN = "Unknown"
DISTRIBUTION_NAME = "perflog"


def _device_model() -> str:
    machine = platform.machine()
    system = platform.system()
    if not machine and not system:
        return UNKNOWN
    return " ".join(part for part in (system, machine) if part)


def _os_version() -> str:
    return platform.release() or UNKNOWN


def _app_version() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return UNKNOWN


def _resident_memory_mb() -> int:
    """Peak resident set size of this process in MB, or -1 if unavailable."""
    try:
        import resource
    except ImportError:
        return -1
    usage = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS and kilobytes elsewhere
    if sys.platform == "darwin":
        return int(usage // (1024 * 1024))
    return int(usage // 1024)


def describe_memory_pressure(memory_mb: int) -> str:
    """Bucket a resident memory size into a pressure descriptor."""
    if memory_mb < 0:
        return UNKNOWN
    if memory_mb > 500:
        return f"High ({memory_mb}MB)"
    if memory_mb > 200:
        return f"Medium ({memory_mb}MB)"
    return f"Low ({memory_mb}MB)"


def capture_device_context() -> DeviceContext:
    """Take a snapshot of the current device and app conditions.

    Battery level and thermal state are not exposed portably, so they are
    reported as unknown.
    """
    try:
        memory_pressure = describe_memory_pressure(_resident_memory_mb())
    except OSError as e:
        LOGGER.debug(f"Could not read memory usage: {e}")
        memory_pressure = UNKNOWN

    return DeviceContext(
        device_model=_device_model(),
        os_version=_os_version(),
        app_version=_app_version(),
        timestamp=datetime.now(),
        memory_pressure=memory_pressure,
        battery_level=-1.0,
        thermal_state=ThermalState.UNKNOWN,
    )
