"""Plain-text rendering of performance sessions.

The output is meant to be copied out of the app and pasted into a bug report
or analysis tool. Rendering is deterministic: the same sessions and device
context always produce the same text. The "Generated" header uses the
device context timestamp rather than the current time for that reason.
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Sequence

from .models import DeviceContext, ImageMetadata, LogEntry, LogSession, ModelInfo

REPORT_TITLE = "Performance Log"


def format_timestamp(value: datetime) -> str:
    """Format a timestamp with millisecond precision."""
    return value.strftime("%Y-%m-%d %H:%M:%S.") + f"{value.microsecond // 1000:03d}"


def format_duration(seconds: float) -> str:
    return f"{seconds:.3f}s"


def format_file_size(size_bytes: int) -> str:
    """Format a byte count in KB or MB (decimal units)."""
    if size_bytes >= 1_000_000:
        return f"{size_bytes / 1_000_000:.1f} MB"
    return f"{size_bytes / 1_000:.1f} KB"


def format_pixel_count(pixels: int) -> str:
    if pixels >= 1_000_000:
        return f"{pixels / 1_000_000:.1f}M"
    if pixels >= 1_000:
        return f"{pixels / 1_000:.1f}K"
    return str(pixels)


def format_image_annotation(image: ImageMetadata) -> str:
    """Render e.g. ``img: 1024x768 compressed 25.0% from 4032x3024``."""
    text = f"img: {int(image.processed_width)}x{int(image.processed_height)}"
    if image.was_compressed:
        text += f" compressed {image.compression_ratio * 100:.1f}%"
    if image.was_resized:
        text += f" from {int(image.original_width)}x{int(image.original_height)}"
    return text


def format_model_info(model_info: ModelInfo) -> str:
    parts = [f"{model_info.service_name}/{model_info.model_name}"]
    if model_info.image_metadata is not None:
        parts.append(format_image_annotation(model_info.image_metadata))
    if model_info.configuration:
        parts.append(
            ",".join(f"{k}={v}" for k, v in sorted(model_info.configuration.items()))
        )
    return ", ".join(parts)


def format_entry(entry: LogEntry) -> str:
    line = f"- {entry.operation}: {format_duration(entry.duration)}"
    if entry.model_info is not None:
        line += f" ({format_model_info(entry.model_info)})"
    return line


def format_session(session: LogSession, index: int) -> List[str]:
    lines = [
        f"=== SESSION {index} ===",
        f"Started: {format_timestamp(session.start_time)}",
    ]
    if session.total_duration is not None:
        lines.append(f"Total Duration: {format_duration(session.total_duration)}")
    else:
        lines.append("Status: Incomplete")

    if not session.entries:
        lines.append("No operations recorded.")
    else:
        lines.append("")
        lines.append("Operations:")
        lines.extend(format_entry(entry) for entry in session.entries)
    return lines


def _header(device_context: DeviceContext) -> List[str]:
    battery = (
        f"{device_context.battery_level:.0%}"
        if device_context.battery_known
        else "unknown"
    )
    return [
        REPORT_TITLE,
        f"Generated: {format_timestamp(device_context.timestamp)}",
        f"Device: {device_context.device_model} ({device_context.os_version})",
        f"App Version: {device_context.app_version}",
        (
            f"Conditions: memory {device_context.memory_pressure}, "
            f"thermal {device_context.thermal_state.value}, battery {battery}"
        ),
    ]


def _summary(sessions: Sequence[LogSession]) -> List[str]:
    lines = ["=== SUMMARY STATISTICS ==="]

    completed = [s for s in sessions if s.is_completed]
    lines.append(f"Total Sessions: {len(sessions)}")
    lines.append(f"Completed Sessions: {len(completed)}")

    durations = [s.total_duration for s in completed]
    if durations:
        lines.append(f"Average Session Duration: {format_duration(sum(durations) / len(durations))}")
        lines.append(f"Fastest Session: {format_duration(min(durations))}")
        lines.append(f"Slowest Session: {format_duration(max(durations))}")

    entries = [entry for s in sessions for entry in s.entries]
    if not entries:
        return lines

    lines.append("")
    lines.append("Operation Statistics:")
    groups: Dict[str, List[LogEntry]] = defaultdict(list)
    for entry in entries:
        groups[entry.base_operation].append(entry)
    for name in sorted(groups):
        group = groups[name]
        average = sum(e.duration for e in group) / len(group)
        line = f"- {name}: {len(group)} times, avg {format_duration(average)}"
        failed = sum(1 for e in group if not e.succeeded)
        if failed:
            line += f" ({failed} failed)"
        lines.append(line)

    images = [
        e.model_info.image_metadata
        for e in entries
        if e.model_info is not None and e.model_info.image_metadata is not None
    ]
    if images:
        lines.append("")
        lines.append("Image Processing Statistics:")
        sizes = [image.processed_file_size_bytes for image in images]
        pixels = [image.processed_pixel_count for image in images]
        lines.append(f"- Images Processed: {len(images)}")
        lines.append(f"- Average File Size: {format_file_size(sum(sizes) // len(sizes))}")
        lines.append(
            f"- Size Range: {format_file_size(min(sizes))} - {format_file_size(max(sizes))}"
        )
        lines.append(
            f"- Average Resolution: {format_pixel_count(sum(pixels) // len(pixels))} pixels"
        )
        lines.append(
            f"- Resolution Range: {format_pixel_count(min(pixels))} - "
            f"{format_pixel_count(max(pixels))} pixels"
        )
        ratios = [image.compression_ratio for image in images if image.was_compressed]
        if ratios:
            lines.append(
                f"- Average Compression: {sum(ratios) / len(ratios) * 100:.1f}% of original size"
            )

    return lines


def format_logs(sessions: Sequence[LogSession], device_context: DeviceContext) -> str:
    """Render sessions as copyable text.

    Args:
        sessions: Sessions to render, in display order
        device_context: Context describing the device generating the report

    Returns:
        Formatted report ending in a newline
    """
    lines = _header(device_context)
    lines.append("")

    if not sessions:
        lines.append("No performance data available.")
        return "\n".join(lines) + "\n"

    for index, session in enumerate(sessions, start=1):
        lines.extend(format_session(session, index))
        lines.append("")

    lines.extend(_summary(sessions))
    return "\n".join(lines) + "\n"
