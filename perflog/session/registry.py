"""Registry of active performance sessions."""

from datetime import datetime, timedelta
import logging
from typing import Callable, Dict, Optional

from .device import capture_device_context
from .models import DeviceContext, LogEntry, LogSession, ModelInfo
from .store import SessionStore

LOGGER = logging.getLogger(__name__)

# Sanity ceiling for a single operation
DEFAULT_MAX_OPERATION_DURATION = 3600.0


class SessionRegistry:
    """Tracks active sessions and validates and appends their entries.

    All state changes go through the lock owned by the session store. Ending
    a session removes it from the active set and inserts it into the store in
    one critical section, so a session is never visible in both places.

    Lifecycle calls never raise for unknown session ids; they log a warning
    and leave state unchanged.
    """

    def __init__(
        self,
        store: SessionStore,
        max_operation_duration: float = DEFAULT_MAX_OPERATION_DURATION,
        device_context_provider: Callable[[], DeviceContext] = capture_device_context,
    ):
        """Initialize the registry.

        Args:
            store: Store that receives completed sessions
            max_operation_duration: Longest duration accepted for one entry
            device_context_provider: Callable returning a device snapshot
        """
        self.store = store
        self.max_operation_duration = max_operation_duration
        self._device_context_provider = device_context_provider
        self._lock = store.lock
        self._active: Dict[str, LogSession] = {}

    def start_session(self) -> str:
        """Start a new session.

        Returns:
            Unique session identifier
        """
        session = LogSession(device_context=self._device_context_provider())
        with self._lock:
            self._active[session.session_id] = session
        LOGGER.debug(f"Started performance session: {session.session_id}")
        return session.session_id

    def log_operation(
        self,
        operation: str,
        duration: float,
        session_id: str,
        model_info: Optional[ModelInfo] = None,
    ) -> None:
        """Append a completed operation to an active session.

        Invalid names or durations and unknown sessions are dropped with a
        warning; nothing is raised to the caller.

        Args:
            operation: Name of the operation
            duration: Time taken in seconds
            session_id: Session to associate with
            model_info: Optional backend/model information
        """
        if not isinstance(operation, str) or not operation.strip():
            LOGGER.warning(
                f"Attempted to log operation with empty name for session {session_id}"
            )
            return

        # The chained comparison is also False for NaN
        if (
            isinstance(duration, bool)
            or not isinstance(duration, (int, float))
            or not 0 <= duration <= self.max_operation_duration
        ):
            LOGGER.warning(
                f"Invalid duration {duration}s for operation '{operation}' "
                f"in session {session_id}"
            )
            return

        with self._lock:
            session = self._active.get(session_id)
            if session is None:
                LOGGER.warning(
                    f"Attempted to log operation '{operation}' for unknown session: {session_id}"
                )
                return
            entry = LogEntry(
                operation=operation,
                start_time=datetime.now() - timedelta(seconds=duration),
                duration=duration,
                model_info=model_info,
                device_context=session.device_context,
            )
            self._active[session_id] = session.with_entry(entry)

        LOGGER.debug(
            f"Logged operation '{operation}' ({duration:.3f}s) for session {session_id}"
        )

    def end_session(self, session_id: str) -> None:
        """Complete a session and hand it to the store.

        With a persistent store this writes the store file on the calling
        thread. Async callers should use ``PerformanceLogger.end_session_async``.
        """
        with self._lock:
            session = self._active.pop(session_id, None)
            if session is None:
                LOGGER.warning(f"Attempted to end unknown session: {session_id}")
                return
            session = session.completed()
            self.store.insert_locked([session])

        self.store.flush()
        LOGGER.info(
            f"Completed performance session: {session_id} with "
            f"{len(session.entries)} operations "
            f"(total: {session.total_duration:.3f}s)"
        )

    def cancel_session(self, session_id: str) -> None:
        """Discard an active session without storing it."""
        with self._lock:
            session = self._active.pop(session_id, None)
        if session is None:
            LOGGER.warning(f"Attempted to cancel unknown session: {session_id}")
            return
        LOGGER.info(
            f"Cancelled session {session_id} with {len(session.entries)} operations"
        )

    def complete_all_active_sessions(self) -> int:
        """Complete every active session and move it into the store.

        Returns:
            Number of sessions completed
        """
        with self._lock:
            end_time = datetime.now()
            sessions = [s.completed(end_time=end_time) for s in self._active.values()]
            self._active.clear()
            if sessions:
                self.store.insert_locked(sessions)

        if sessions:
            self.store.flush()
            LOGGER.info(f"Force completed {len(sessions)} active sessions")
        return len(sessions)

    def clear_active_sessions(self) -> int:
        """Discard every active session.

        Returns:
            Number of sessions discarded
        """
        with self._lock:
            count = len(self._active)
            self._active.clear()
        return count

    # -- queries ----------------------------------------------------------

    def is_active(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._active

    def get_active_session(self, session_id: str) -> Optional[LogSession]:
        """Return a snapshot of an active session, or None."""
        with self._lock:
            return self._active.get(session_id)

    def get_active_session_info(self) -> Dict[str, int]:
        """Map each active session id to its entry count."""
        with self._lock:
            return {sid: len(s.entries) for sid, s in self._active.items()}

    def session_has_operations(self, session_id: str) -> bool:
        with self._lock:
            session = self._active.get(session_id)
            return session is not None and bool(session.entries)

    def get_session_duration(self, session_id: str) -> Optional[float]:
        """Elapsed seconds of an active session, None if it is not active."""
        with self._lock:
            session = self._active.get(session_id)
            if session is None:
                return None
            return (datetime.now() - session.start_time).total_seconds()
