"""Timing helpers that measure work and log it to the session registry."""

import asyncio
from contextlib import contextmanager
from dataclasses import dataclass
import logging
import time
from typing import (
    Awaitable,
    Callable,
    Iterable,
    Iterator,
    List,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

from .errors import OperationTimeout, SessionNotFound
from .models import (
    CANCELLED,
    CONDITION_FAILED,
    FAILED,
    TIMEOUT,
    ModelInfo,
    mark_operation,
)
from .registry import SessionRegistry

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class TimingToken:
    """Handle linking a manual start mark to its later completion."""

    operation: str
    session_id: str
    start_time: float  # time.perf_counter() value


class BatchOperation(NamedTuple):
    """A precomputed measurement for batch logging."""

    name: str
    duration: float
    model_info: Optional[ModelInfo] = None
    success: bool = True


class OperationTimer:
    """Wraps units of work with timing and logs the outcome.

    The timer keeps no state of its own besides the registry reference.
    Every measurement logs exactly one entry: the plain operation name on
    success, or the name tagged with an outcome marker ("failed",
    "condition failed", "timeout", "cancelled") otherwise. Errors raised by
    the work are always re-raised unchanged; errors raised while logging are
    reported through the module logger and never reach the caller.
    """

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def _require_session(self, operation: str, session_id: str) -> None:
        if not self.registry.is_active(session_id):
            LOGGER.warning(
                f"Cannot measure operation '{operation}' - session {session_id} does not exist"
            )
            raise SessionNotFound(session_id)

    def _log(
        self,
        operation: str,
        duration: float,
        session_id: str,
        model_info: Optional[ModelInfo],
    ) -> None:
        try:
            self.registry.log_operation(
                operation, duration, session_id, model_info=model_info
            )
        except Exception:
            LOGGER.error(f"Failed to log operation '{operation}'", exc_info=True)

    def _log_cancelled(
        self,
        operation: str,
        start: float,
        session_id: str,
        model_info: Optional[ModelInfo],
    ) -> None:
        duration = time.perf_counter() - start
        self._log(mark_operation(operation, CANCELLED), duration, session_id, model_info)
        LOGGER.warning(f"Cancelled operation '{operation}' after {duration:.3f}s")

    @contextmanager
    def measuring(
        self,
        operation: str,
        session_id: str,
        model_info: Optional[ModelInfo] = None,
    ) -> Iterator[None]:
        """Time the body of a ``with`` block and log it on every exit path.

        Raises:
            SessionNotFound: If the session is not active when entering
        """
        self._require_session(operation, session_id)
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            duration = time.perf_counter() - start
            self._log(mark_operation(operation, FAILED), duration, session_id, model_info)
            LOGGER.error(f"Failed operation '{operation}' after {duration:.3f}s: {e}")
            raise
        except BaseException:
            self._log_cancelled(operation, start, session_id, model_info)
            raise
        else:
            duration = time.perf_counter() - start
            self._log(operation, duration, session_id, model_info)
            LOGGER.debug(f"Successfully measured operation '{operation}': {duration:.3f}s")

    async def measure_operation(
        self,
        operation: str,
        session_id: str,
        work: Callable[[], Awaitable[T]],
        model_info: Optional[ModelInfo] = None,
    ) -> T:
        """Await ``work()`` and log how long it took.

        Args:
            operation: Name of the operation
            session_id: Session to log to
            work: Zero-argument callable returning an awaitable
            model_info: Optional backend/model information

        Returns:
            Result of the work

        Raises:
            SessionNotFound: If the session is not active
        """
        with self.measuring(operation, session_id, model_info):
            return await work()

    def measure_sync_operation(
        self,
        operation: str,
        session_id: str,
        work: Callable[[], T],
        model_info: Optional[ModelInfo] = None,
    ) -> T:
        """Run a synchronous callable and log how long it took."""
        with self.measuring(operation, session_id, model_info):
            return work()

    async def measure_sequential_operations(
        self,
        operations: Sequence[Tuple[str, Callable[[], Awaitable[T]]]],
        session_id: str,
        model_info: Optional[ModelInfo] = None,
    ) -> List[T]:
        """Measure several steps in order, stopping at the first failure.

        Returns:
            Results of each step, in order
        """
        results = []
        for name, work in operations:
            results.append(
                await self.measure_operation(name, session_id, work, model_info)
            )
        return results

    async def measure_operation_with_condition(
        self,
        operation: str,
        session_id: str,
        work: Callable[[], Awaitable[T]],
        success_condition: Callable[[T], bool],
        model_info: Optional[ModelInfo] = None,
    ) -> T:
        """Measure work whose result must satisfy ``success_condition``.

        A rejected result is logged as "condition failed" and still returned.
        """
        self._require_session(operation, session_id)
        start = time.perf_counter()
        try:
            result = await work()
        except Exception as e:
            duration = time.perf_counter() - start
            self._log(mark_operation(operation, FAILED), duration, session_id, model_info)
            LOGGER.error(
                f"Failed conditional operation '{operation}' after {duration:.3f}s: {e}"
            )
            raise
        except BaseException:
            self._log_cancelled(operation, start, session_id, model_info)
            raise
        duration = time.perf_counter() - start

        try:
            satisfied = success_condition(result)
        except Exception as e:
            self._log(mark_operation(operation, FAILED), duration, session_id, model_info)
            LOGGER.error(f"Condition check for '{operation}' raised: {e}")
            raise

        if satisfied:
            self._log(operation, duration, session_id, model_info)
        else:
            self._log(
                mark_operation(operation, CONDITION_FAILED), duration, session_id, model_info
            )
            LOGGER.warning(
                f"Conditional operation '{operation}' completed but failed "
                f"condition check: {duration:.3f}s"
            )
        return result

    async def measure_operation_with_timeout(
        self,
        operation: str,
        session_id: str,
        work: Callable[[], Awaitable[T]],
        timeout: float,
        model_info: Optional[ModelInfo] = None,
    ) -> T:
        """Measure work that must finish within ``timeout`` seconds.

        Errors raised by the work itself, a ``TimeoutError`` included, are
        logged as failed and re-raised unchanged.

        Raises:
            OperationTimeout: If the work does not finish in time
        """
        self._require_session(operation, session_id)
        start = time.perf_counter()
        task = asyncio.ensure_future(work())
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except BaseException:
            task.cancel()
            self._log_cancelled(operation, start, session_id, model_info)
            raise

        if not done:
            duration = time.perf_counter() - start
            task.cancel()
            await asyncio.wait({task})
            self._log(mark_operation(operation, TIMEOUT), duration, session_id, model_info)
            LOGGER.error(
                f"Timed operation '{operation}' exceeded timeout of {timeout}s "
                f"after {duration:.3f}s"
            )
            raise OperationTimeout(operation, timeout)

        try:
            result = task.result()
        except Exception as e:
            duration = time.perf_counter() - start
            self._log(mark_operation(operation, FAILED), duration, session_id, model_info)
            LOGGER.error(f"Failed timed operation '{operation}' after {duration:.3f}s: {e}")
            raise
        except BaseException:
            self._log_cancelled(operation, start, session_id, model_info)
            raise
        duration = time.perf_counter() - start
        self._log(operation, duration, session_id, model_info)
        return result

    def start_timing(self, operation: str, session_id: str) -> TimingToken:
        """Start a manual measurement.

        Raises:
            SessionNotFound: If the session is not active
        """
        self._require_session(operation, session_id)
        LOGGER.debug(f"Started manual timing for '{operation}' in session {session_id}")
        return TimingToken(
            operation=operation,
            session_id=session_id,
            start_time=time.perf_counter(),
        )

    def end_timing(
        self,
        token: TimingToken,
        success: bool = True,
        error: Optional[BaseException] = None,
        model_info: Optional[ModelInfo] = None,
    ) -> float:
        """Finish a manual measurement started with ``start_timing``.

        Returns:
            Elapsed seconds
        """
        duration = time.perf_counter() - token.start_time
        failed = error is not None or not success
        operation = mark_operation(token.operation, FAILED) if failed else token.operation
        self._log(operation, duration, token.session_id, model_info)

        if error is not None:
            LOGGER.error(
                f"Ended manual timing for '{token.operation}' with error: "
                f"{duration:.3f}s - {error}"
            )
        else:
            status = "failed" if failed else "completed"
            LOGGER.debug(
                f"Ended manual timing for '{token.operation}': {duration:.3f}s ({status})"
            )
        return duration

    def log_precalculated_operation(
        self,
        operation: str,
        start: float,
        end: float,
        session_id: str,
        model_info: Optional[ModelInfo] = None,
        success: bool = True,
    ) -> None:
        """Log an operation timed elsewhere with two ``perf_counter`` marks."""
        name = operation if success else mark_operation(operation, FAILED)
        self._log(name, end - start, session_id, model_info)

    def batch_log_operations(
        self,
        operations: Iterable[Union[BatchOperation, tuple]],
        session_id: str,
    ) -> int:
        """Log precomputed measurements without re-timing them.

        Returns:
            Number of operations submitted
        """
        count = 0
        for op in operations:
            try:
                op = op if isinstance(op, BatchOperation) else BatchOperation(*op)
            except TypeError:
                LOGGER.error(f"Skipping malformed batch operation: {op!r}", exc_info=True)
                continue
            name = op.name if op.success else mark_operation(op.name, FAILED)
            self._log(name, op.duration, session_id, op.model_info)
            count += 1
        LOGGER.debug(f"Batch logged {count} operations for session {session_id}")
        return count
