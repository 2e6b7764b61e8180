"""Exceptions raised by the performance logging subsystem."""


class PerformanceLoggerError(Exception):
    """Base class for performance logging errors."""


class SessionNotFound(PerformanceLoggerError, KeyError):
    """Raised when a measurement targets a session that is not active."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(session_id)

    def __str__(self) -> str:
        return f"Performance logging session not found: {self.session_id}"


class OperationTimeout(PerformanceLoggerError, TimeoutError):
    """Raised when a measured operation exceeds its timeout."""

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"Operation '{operation}' timed out after {timeout} seconds")
