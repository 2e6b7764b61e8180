"""Tests for performance session data models."""

from datetime import datetime, timedelta

import pytest

from perflog.session.models import (
    DeviceContext,
    ImageMetadata,
    LogEntry,
    LogSession,
    ModelInfo,
    ThermalState,
    mark_operation,
    split_operation_name,
)


def make_context(**overrides) -> DeviceContext:
    values = dict(
        device_model="Linux x86_64",
        os_version="6.1.0",
        app_version="0.1.0",
        timestamp=datetime(2025, 1, 1, 12, 0, 0),
    )
    values.update(overrides)
    return DeviceContext(**values)


def make_image(**overrides) -> ImageMetadata:
    values = dict(
        original_width=4000,
        original_height=3000,
        processed_width=2000,
        processed_height=1500,
        original_file_size_bytes=4_000_000,
        processed_file_size_bytes=1_000_000,
        image_format="JPEG",
        compression_quality=0.8,
    )
    values.update(overrides)
    return ImageMetadata(**values)


class TestImageMetadata:
    """Test derived image values."""

    def test_pixel_counts(self):
        image = make_image()
        assert image.original_pixel_count == 12_000_000
        assert image.processed_pixel_count == 3_000_000

    def test_ratios(self):
        image = make_image()
        assert image.compression_ratio == pytest.approx(0.25)
        assert image.resolution_reduction_ratio == pytest.approx(0.25)

    def test_ratios_with_zero_original(self):
        image = make_image(original_file_size_bytes=0, original_width=0)
        assert image.compression_ratio == 0.0
        assert image.resolution_reduction_ratio == 0.0

    def test_compressed_and_resized_flags(self):
        assert make_image().was_compressed
        assert make_image().was_resized

        untouched = make_image(
            processed_width=4000,
            processed_height=3000,
            processed_file_size_bytes=4_000_000,
        )
        assert not untouched.was_compressed
        assert not untouched.was_resized


class TestModelInfo:
    """Test model information values."""

    def test_equality_by_fields(self):
        a = ModelInfo("Gemini", "gemini-2.5-flash", {"temperature": "0.2"})
        b = ModelInfo("Gemini", "gemini-2.5-flash", {"temperature": "0.2"})
        assert a == b
        assert a != ModelInfo("Vision", "Apple Vision")

    def test_configuration_values_are_strings(self):
        info = ModelInfo("Gemini", "gemini-2.5-flash", {"max_tokens": 1024})
        assert info.configuration == {"max_tokens": "1024"}

    def test_round_trip_with_image(self):
        info = ModelInfo("Gemini", "gemini-2.5-flash", {"k": "v"}, make_image())
        assert ModelInfo.from_dict(info.to_dict()) == info

    def test_hashable_with_configuration(self):
        a = ModelInfo("Gemini", "gemini-2.5-flash", {"temperature": "0.2"}, make_image())
        b = ModelInfo("Gemini", "gemini-2.5-flash", {"temperature": "0.2"}, make_image())
        assert hash(a) == hash(b)
        assert len({a, b}) == 1


class TestOperationNames:
    """Test outcome markers on operation names."""

    def test_plain_name(self):
        assert split_operation_name("Capture") == ("Capture", None)

    def test_marked_names(self):
        assert split_operation_name(mark_operation("X", "failed")) == ("X", "failed")
        assert split_operation_name("Extract (condition failed)") == (
            "Extract",
            "condition failed",
        )
        assert split_operation_name("Upload (timeout)") == ("Upload", "timeout")

    def test_unrelated_parentheses_are_kept(self):
        assert split_operation_name("Resize (2x)") == ("Resize (2x)", None)


class TestLogSession:
    """Test session value semantics."""

    def test_new_session_is_active(self):
        session = LogSession(device_context=make_context())
        assert not session.is_completed
        assert session.total_duration is None
        assert session.entries == ()

    def test_with_entry_returns_new_session(self):
        session = LogSession(device_context=make_context())
        entry = LogEntry("Capture", datetime.now(), 0.5, make_context())

        updated = session.with_entry(entry)

        assert session.entries == ()
        assert updated.entries == (entry,)
        assert updated.session_id == session.session_id

    def test_completed_session_is_frozen(self):
        start = datetime(2025, 1, 1, 12, 0, 0)
        session = LogSession(device_context=make_context(), start_time=start)
        done = session.completed(end_time=start + timedelta(seconds=3))

        assert done.is_completed
        assert done.was_successful is True
        assert done.total_duration == pytest.approx(3.0)
        assert done.completed() is done
        with pytest.raises(ValueError):
            done.with_entry(LogEntry("Late", datetime.now(), 0.1, make_context()))

    def test_operations_duration(self):
        session = LogSession(device_context=make_context())
        for duration in (0.1, 0.2, 0.3):
            session = session.with_entry(
                LogEntry("Op", datetime.now(), duration, make_context())
            )
        assert session.operations_duration == pytest.approx(0.6)

    def test_round_trip(self):
        context = make_context(thermal_state=ThermalState.SERIOUS, battery_level=0.5)
        session = LogSession(device_context=context).with_entry(
            LogEntry(
                "Extract",
                datetime(2025, 1, 1, 12, 0, 1),
                2.89,
                context,
                model_info=ModelInfo("Gemini", "gemini-2.5-flash"),
            )
        )
        done = session.completed()

        assert LogSession.from_dict(done.to_dict()) == done

    def test_from_dict_ignores_unknown_fields(self):
        data = LogSession(device_context=make_context()).completed().to_dict()
        data["future_field"] = "ignored"
        data["device_context"]["thermal_state"] = "Melting"

        session = LogSession.from_dict(data)

        assert session.device_context.thermal_state == ThermalState.UNKNOWN


class TestLogEntryDecoding:
    """Test that decoded entries satisfy the logging rules."""

    def entry_data(self, **overrides):
        data = LogEntry("Capture", datetime(2025, 1, 1, 12, 0, 0), 0.5, make_context()).to_dict()
        data.update(overrides)
        return data

    def test_valid_entry(self):
        entry = LogEntry.from_dict(self.entry_data())
        assert entry.operation == "Capture"
        assert entry.duration == 0.5

    @pytest.mark.parametrize("operation", [123, None, "", "   "])
    def test_rejects_bad_operation(self, operation):
        with pytest.raises(ValueError):
            LogEntry.from_dict(self.entry_data(operation=operation))

    @pytest.mark.parametrize("duration", [-5, "nan", "inf"])
    def test_rejects_bad_duration(self, duration):
        with pytest.raises(ValueError):
            LogEntry.from_dict(self.entry_data(duration=duration))
