"""Performance logging service composing the registry, store and timer."""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

from perflog.config.settings_manager import LoggerSettings, get_logger_settings
from perflog.core.config_paths import ConfigPaths
from perflog.session.device import capture_device_context
from perflog.session.formatter import format_logs
from perflog.session.models import DeviceContext, LogSession, ModelInfo, StorageInfo
from perflog.session.registry import SessionRegistry
from perflog.session.store import DEFAULT_MAX_SESSIONS, SessionStore
from perflog.session.timing import OperationTimer, TimingToken

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class PerformanceLogger:
    """Process-wide performance logger.

    Construct one instance at startup and pass it to the code being
    instrumented. Tests construct their own instances for isolation.

    Features:
    - Session lifecycle (start, log, end, cancel)
    - Timing helpers via ``timer``
    - Read-only queries and formatted export
    - Privacy reset
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        max_operation_duration: Optional[float] = None,
        device_context_provider: Callable[[], DeviceContext] = capture_device_context,
    ):
        """Initialize the service.

        Args:
            store: Session store (default: in-memory store with default caps)
            max_operation_duration: Longest duration accepted for one entry
            device_context_provider: Callable returning a device snapshot
        """
        self.store = store if store is not None else SessionStore()
        registry_kwargs = {}
        if max_operation_duration is not None:
            registry_kwargs["max_operation_duration"] = max_operation_duration
        self.registry = SessionRegistry(
            self.store,
            device_context_provider=device_context_provider,
            **registry_kwargs,
        )
        self.timer = OperationTimer(self.registry)
        self._device_context_provider = device_context_provider

    @classmethod
    def from_settings(
        cls,
        settings: Optional[LoggerSettings] = None,
        persist_path: Optional[Path] = None,
    ) -> "PerformanceLogger":
        """Build a logger from saved settings.

        Args:
            settings: Settings to use (default: loaded from config.json)
            persist_path: Store file (default: ConfigPaths.get_sessions_file())
        """
        settings = settings or get_logger_settings()
        if settings.persist_sessions and persist_path is None:
            persist_path = ConfigPaths.get_sessions_file()
        store = SessionStore(
            max_sessions=settings.max_stored_sessions,
            max_size_bytes=settings.max_storage_bytes,
            persist_path=persist_path if settings.persist_sessions else None,
        )
        return cls(store=store, max_operation_duration=settings.max_operation_duration)

    def __enter__(self) -> "PerformanceLogger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Complete all active sessions so nothing in flight is lost."""
        self.registry.complete_all_active_sessions()

    # -- session lifecycle ------------------------------------------------

    def start_session(self) -> str:
        return self.registry.start_session()

    def log_operation(
        self,
        operation: str,
        duration: float,
        session_id: str,
        model_info: Optional[ModelInfo] = None,
    ) -> None:
        self.registry.log_operation(operation, duration, session_id, model_info)

    def end_session(self, session_id: str) -> None:
        self.registry.end_session(session_id)

    async def end_session_async(self, session_id: str) -> None:
        """End a session without blocking the event loop on the store write."""
        await asyncio.to_thread(self.registry.end_session, session_id)

    def cancel_session(self, session_id: str) -> None:
        self.registry.cancel_session(session_id)

    def complete_all_active_sessions(self) -> int:
        return self.registry.complete_all_active_sessions()

    # -- timing -----------------------------------------------------------

    async def measure_operation(
        self,
        operation: str,
        session_id: str,
        work: Callable[[], Awaitable[T]],
        model_info: Optional[ModelInfo] = None,
    ) -> T:
        return await self.timer.measure_operation(operation, session_id, work, model_info)

    def measure_sync_operation(
        self,
        operation: str,
        session_id: str,
        work: Callable[[], T],
        model_info: Optional[ModelInfo] = None,
    ) -> T:
        return self.timer.measure_sync_operation(operation, session_id, work, model_info)

    def start_timing(self, operation: str, session_id: str) -> TimingToken:
        return self.timer.start_timing(operation, session_id)

    def end_timing(
        self,
        token: TimingToken,
        success: bool = True,
        error: Optional[BaseException] = None,
        model_info: Optional[ModelInfo] = None,
    ) -> float:
        return self.timer.end_timing(token, success=success, error=error, model_info=model_info)

    def batch_log_operations(self, operations: Iterable, session_id: str) -> int:
        return self.timer.batch_log_operations(operations, session_id)

    # -- queries ----------------------------------------------------------

    def get_recent_sessions(self, limit: int = DEFAULT_MAX_SESSIONS) -> List[LogSession]:
        """Completed sessions, most recent first."""
        return self.store.get_recent_sessions(limit)

    def get_storage_info(self) -> StorageInfo:
        return self.store.get_storage_info()

    def get_formatted_logs(self, limit: int = DEFAULT_MAX_SESSIONS) -> str:
        """Stored sessions rendered as copyable text."""
        sessions = self.get_recent_sessions(limit)
        return format_logs(sessions, self._device_context_provider())

    def get_active_session_info(self) -> Dict[str, int]:
        return self.registry.get_active_session_info()

    def session_has_operations(self, session_id: str) -> bool:
        return self.registry.session_has_operations(session_id)

    def get_session_duration(self, session_id: str) -> Optional[float]:
        return self.registry.get_session_duration(session_id)

    # -- privacy ----------------------------------------------------------

    def clear_all(self) -> None:
        """Wipe stored and active sessions."""
        active = self.registry.clear_active_sessions()
        completed = self.store.clear_all()
        LOGGER.info(
            f"Cleared all performance logs ({completed} completed, {active} active sessions)"
        )

    def clear_old_logs_only(self) -> int:
        """Evict only sessions exceeding the store caps."""
        return self.store.clear_old_logs_only()
