"""Errors surfaced to callers awaiting a broker submission."""


class BrokerError(Exception):
    """Base class for all broker errors."""


class QueueFullError(BrokerError):
    """Raised by submit() when the queue is at capacity."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        super().__init__(
            f"Command queue is full ({capacity} pending). "
            "The design plugin may not be connected."
        )


class ExecutorReportedFailure(BrokerError):
    """The executor ran the command and reported a failure.

    The message is the executor's own text, passed through unchanged.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class CommandTimeoutError(BrokerError):
    """No completion arrived before the command's deadline."""

    def __init__(self, command_id: str, elapsed_ms: int):
        self.command_id = command_id
        self.elapsed_ms = elapsed_ms
        super().__init__(
            f"Command {command_id} timed out after {elapsed_ms}ms. "
            "Is the design plugin running?"
        )
