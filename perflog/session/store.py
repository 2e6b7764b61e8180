"""Bounded, self-evicting store of completed sessions."""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .models import LogSession, StorageInfo

LOGGER = logging.getLogger(__name__)

# Version of the persisted document layout
STORE_FORMAT_VERSION = 1

DEFAULT_MAX_SESSIONS = 50
DEFAULT_MAX_SIZE_BYTES = 1024 * 1024  # 1MB


def estimate_session_size(session: LogSession) -> int:
    """Estimate the stored size of a session in bytes.

    Uses the length of the compact, sorted-key JSON encoding, which grows with
    the number of entries, operation name lengths, and attached metadata.
    """
    encoded = json.dumps(session.to_dict(), sort_keys=True, separators=(",", ":"))
    return len(encoded.encode("utf-8"))


class SessionStore:
    """Ordered collection of completed sessions with capacity-based eviction.

    Sessions are kept oldest first and read most recent first. Every insert
    evicts the oldest sessions until both the count cap and the estimated
    byte cap hold.

    The store owns the lock that serializes all session state. The session
    registry shares it, so moving a session from the active set into the
    store is a single critical section.
    """

    def __init__(
        self,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
        persist_path: Optional[Path] = None,
    ):
        """Initialize the store.

        Args:
            max_sessions: Maximum number of completed sessions to keep
            max_size_bytes: Maximum estimated total size of kept sessions
            persist_path: Optional JSON file to load from and write to
        """
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        if max_size_bytes < 1:
            raise ValueError("max_size_bytes must be at least 1")

        self.max_sessions = max_sessions
        self.max_size_bytes = max_size_bytes
        self.persist_path = Path(persist_path) if persist_path else None

        self.lock = threading.RLock()
        self._io_lock = threading.Lock()
        self._sessions: List[LogSession] = []
        self._sizes: Dict[str, int] = {}
        self._generation = 0
        self._flushed_generation = 0

        if self.persist_path is not None:
            self._load()

    def __len__(self) -> int:
        with self.lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self.lock:
            return session_id in self._sizes

    # -- mutation ---------------------------------------------------------

    def insert(self, session: LogSession) -> None:
        """Insert a completed session and enforce capacity."""
        self.insert_many([session])

    def insert_many(self, sessions: Iterable[LogSession]) -> None:
        """Insert completed sessions in order and enforce capacity once."""
        with self.lock:
            inserted = self.insert_locked(sessions)
        if inserted:
            self.flush()

    def insert_locked(self, sessions: Iterable[LogSession]) -> int:
        """Insert sessions while the caller already holds ``lock``.

        The caller is responsible for calling ``flush()`` after releasing the
        lock.

        Returns:
            Number of sessions inserted
        """
        count = 0
        for session in sessions:
            if not session.is_completed:
                raise ValueError(f"Session {session.session_id} is not completed")
            if session.session_id in self._sizes:
                LOGGER.warning(f"Session {session.session_id} is already stored")
                continue
            self._sessions.append(session)
            self._sizes[session.session_id] = estimate_session_size(session)
            count += 1
        if count:
            self._enforce_limits()
            self._generation += 1
        return count

    def clear_all(self) -> int:
        """Remove every stored session.

        Returns:
            Number of sessions removed
        """
        with self.lock:
            removed = len(self._sessions)
            self._sessions.clear()
            self._sizes.clear()
            self._generation += 1
        self.flush()
        LOGGER.info(f"Cleared {removed} stored performance sessions")
        return removed

    def clear_old_logs_only(self) -> int:
        """Evict only the sessions that exceed the current caps.

        Returns:
            Number of sessions removed (0 when already within limits)
        """
        with self.lock:
            removed = self._enforce_limits()
            if removed:
                self._generation += 1
        if removed:
            self.flush()
            LOGGER.info(f"Removed {removed} old log sessions")
        return removed

    def _enforce_limits(self) -> int:
        removed = 0

        # Count first
        excess = len(self._sessions) - self.max_sessions
        if excess > 0:
            for session in self._sessions[:excess]:
                del self._sizes[session.session_id]
            del self._sessions[:excess]
            removed += excess

        # Then size
        current_size = self._total_size()
        while current_size > self.max_size_bytes and self._sessions:
            oldest = self._sessions.pop(0)
            current_size -= self._sizes.pop(oldest.session_id)
            removed += 1

        if removed:
            LOGGER.debug(
                f"Removed {removed} old sessions to maintain storage limits "
                f"(count: {len(self._sessions)}, size: {current_size} bytes)"
            )
        return removed

    def _total_size(self) -> int:
        return sum(self._sizes.values())

    # -- queries ----------------------------------------------------------

    def get_recent_sessions(self, limit: int = DEFAULT_MAX_SESSIONS) -> List[LogSession]:
        """Return up to ``limit`` sessions, most recent first."""
        if limit <= 0:
            return []
        with self.lock:
            return list(reversed(self._sessions[-limit:]))

    def get_storage_info(self) -> StorageInfo:
        """Return the current session count and estimated size."""
        with self.lock:
            return StorageInfo(
                session_count=len(self._sessions),
                estimated_size_bytes=self._total_size(),
                max_size_bytes=self.max_size_bytes,
            )

    # -- persistence ------------------------------------------------------

    def flush(self) -> None:
        """Write the current state to ``persist_path`` if it changed.

        The snapshot is taken under the lock and written outside it. A
        generation counter keeps a slower writer from overwriting a newer
        snapshot.
        """
        if self.persist_path is None:
            return

        with self.lock:
            generation = self._generation
            payload = {
                "version": STORE_FORMAT_VERSION,
                "sessions": [session.to_dict() for session in self._sessions],
            }

        with self._io_lock:
            if generation <= self._flushed_generation:
                return
            try:
                self._write_atomic(payload)
            except (OSError, TypeError, ValueError) as e:
                LOGGER.error(f"Failed to persist sessions: {e}", exc_info=True)
                return
            self._flushed_generation = generation
            LOGGER.debug(
                f"Persisted {len(payload['sessions'])} sessions to {self.persist_path}"
            )

    def _write_atomic(self, payload: Dict[str, Any]) -> None:
        path = self.persist_path
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, sort_keys=True, separators=(",", ":"))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _load(self) -> None:
        """Load persisted sessions, discarding records that fail to decode."""
        path = self.persist_path
        if not path.exists():
            LOGGER.debug("No persisted sessions found")
            return

        try:
            content = path.read_text(encoding="utf-8")
            data = json.loads(content) if content.strip() else {}
        except (OSError, json.JSONDecodeError) as e:
            LOGGER.error(f"Failed to load persisted sessions: {e}. Discarding store.")
            self._discard_file()
            return

        records = data.get("sessions", []) if isinstance(data, dict) else []
        if not isinstance(records, list):
            records = []
        loaded = []
        for record in records:
            try:
                session = LogSession.from_dict(record)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                LOGGER.warning(f"Discarding corrupted session record: {e}")
                continue
            if not session.is_completed:
                LOGGER.warning(f"Discarding incomplete session record {session.session_id}")
                continue
            loaded.append(session)

        with self.lock:
            self.insert_locked(loaded)
            # Loading alone does not require a rewrite
            self._flushed_generation = self._generation
            discarded = len(records) - len(loaded)
            if discarded or len(self._sessions) < len(loaded):
                # Rewrite without the dropped or evicted records
                self._flushed_generation -= 1

        LOGGER.debug(f"Loaded {len(loaded)} persisted sessions from {path}")
        self.flush()

    def _discard_file(self) -> None:
        try:
            self.persist_path.unlink(missing_ok=True)
        except OSError as e:
            LOGGER.warning(f"Could not remove corrupted session store: {e}")
