import asyncio
import logging
import time
import uuid
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Generator, List, Optional

from .errors import CommandTimeoutError, ExecutorReportedFailure, QueueFullError

logger = logging.getLogger("designbridge.broker")

DEFAULT_CAPACITY = 100
DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_SWEEP_INTERVAL_MS = 5_000
DEFAULT_FAILURE_MESSAGE = "Executor reported failure"


@dataclass(frozen=True)
class PolledCommand:
    """The part of a pending command an executor is allowed to see."""

    id: str
    kind: str
    payload: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "kind": self.kind, "payload": self.payload}


@dataclass
class PendingCommand:
    """A queued command and the future its caller is waiting on."""

    id: str
    kind: str
    payload: Any
    created_at: float
    future: "asyncio.Future[Any]" = field(repr=False)

    def to_polled(self) -> PolledCommand:
        return PolledCommand(id=self.id, kind=self.kind, payload=self.payload)


@dataclass(frozen=True)
class CommandOutcome:
    """Result of a command as reported by the executor."""

    success: bool
    result: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, result: Any = None) -> "CommandOutcome":
        return cls(success=True, result=result)

    @classmethod
    def failed(cls, error: Optional[str] = None) -> "CommandOutcome":
        return cls(success=False, error=error)


@dataclass
class BrokerStats:
    """Lifetime counters, exported on the metrics endpoint."""

    submitted: int = 0
    rejected: int = 0
    completed: int = 0
    failed: int = 0
    timed_out: int = 0
    unknown_completions: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class CommandTicket:
    """Handle returned by submit(): the command id plus an awaitable result."""

    __slots__ = ("id", "future")

    def __init__(self, command_id: str, future: "asyncio.Future[Any]"):
        self.id = command_id
        self.future = future

    def __await__(self) -> Generator[Any, None, Any]:
        return self.future.__await__()

    def __repr__(self) -> str:
        return f"CommandTicket(id={self.id!r}, done={self.future.done()})"


class CommandBroker:
    """
    In-memory correlation queue between tool callers and a polling executor.

    All mutating methods are synchronous and must be called from the event
    loop that owns the broker. None of them awaits, so the loop serializes
    submit, poll, complete and sweep against each other.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the broker.

        Args:
            capacity: Maximum number of pending commands
            timeout_ms: Age after which a pending command is failed
            sweep_interval_ms: Period of the background timeout sweep
            clock: Monotonic clock returning seconds (injectable for tests)
        """
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        if timeout_ms < 1:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        if sweep_interval_ms < 1:
            raise ValueError(f"sweep_interval_ms must be positive, got {sweep_interval_ms}")

        self.capacity = capacity
        self.timeout_ms = timeout_ms
        self.sweep_interval_ms = sweep_interval_ms
        self.stats = BrokerStats()

        self._clock = clock
        self._pending: "OrderedDict[str, PendingCommand]" = OrderedDict()
        self._sweep_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def pending_ids(self) -> List[str]:
        """Ids of queued commands, oldest first."""
        return list(self._pending)

    # Submission

    def submit(self, kind: str, payload: Any = None) -> CommandTicket:
        """
        Queue a command for the executor.

        Args:
            kind: Operation name, passed through to the executor
            payload: Operation arguments, passed through to the executor

        Returns:
            Ticket carrying the command id; await it for the result

        Raises:
            QueueFullError: If capacity is reached. No entry is created.
        """
        if len(self._pending) >= self.capacity:
            self.stats.rejected += 1
            logger.warning(f"Rejected '{kind}' command: queue at capacity ({self.capacity})")
            raise QueueFullError(self.capacity)

        loop = asyncio.get_running_loop()
        command = PendingCommand(
            id=str(uuid.uuid4()),
            kind=kind,
            payload=payload,
            created_at=self._clock(),
            future=loop.create_future(),
        )
        self._pending[command.id] = command
        self.stats.submitted += 1

        logger.debug(f"Queued command {command.id} ({kind}), {len(self._pending)} pending")
        return CommandTicket(command.id, command.future)

    async def execute(self, kind: str, payload: Any = None) -> Any:
        """Submit a command and wait for its result."""
        return await self.submit(kind, payload)

    # Executor side

    def poll_next(self) -> Optional[PolledCommand]:
        """
        Return the oldest pending command without removing it.

        The command stays queued until it is completed or times out, so a
        poll repeated before either happens returns the same command.
        """
        if not self._pending:
            return None
        head = next(iter(self._pending.values()))
        return head.to_polled()

    def complete(self, command_id: str, outcome: CommandOutcome) -> bool:
        """
        Deliver the executor's outcome to the waiting caller.

        Args:
            command_id: Id of the command being completed
            outcome: Success value or failure message

        Returns:
            True if the command was pending, False if unknown or already
            resolved (duplicate post, or the sweep got there first)
        """
        command = self._pending.pop(command_id, None)
        if command is None:
            self.stats.unknown_completions += 1
            logger.info(f"Completion for unknown or already resolved command {command_id}")
            return False

        if command.future.done():
            # Caller stopped waiting (cancelled); nothing to deliver.
            logger.info(f"Dropping outcome for abandoned command {command_id}")
            return True

        if outcome.success:
            command.future.set_result(outcome.result)
            self.stats.completed += 1
            logger.debug(f"Command {command_id} ({command.kind}) completed")
        else:
            message = outcome.error or DEFAULT_FAILURE_MESSAGE
            command.future.set_exception(ExecutorReportedFailure(message))
            self.stats.failed += 1
            logger.info(f"Command {command_id} ({command.kind}) failed: {message}")

        return True

    # Timeouts

    def sweep(self) -> int:
        """
        Fail every command older than the timeout.

        Returns:
            Number of commands evicted
        """
        now = self._clock()
        limit = self.timeout_ms / 1000
        expired = [c for c in self._pending.values() if now - c.created_at > limit]

        for command in expired:
            del self._pending[command.id]
            elapsed_ms = int((now - command.created_at) * 1000)
            self.stats.timed_out += 1
            logger.warning(
                f"Command {command.id} ({command.kind}) timed out after {elapsed_ms}ms"
            )
            if not command.future.done():
                command.future.set_exception(CommandTimeoutError(command.id, elapsed_ms))

        return len(expired)

    @property
    def sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Start the background timeout sweep on the running loop."""
        if self.sweeping:
            return
        loop = asyncio.get_running_loop()
        self._sweep_task = loop.create_task(self._sweep_loop(), name="designbridge-sweeper")
        logger.info(
            f"Timeout sweep started (timeout {self.timeout_ms}ms, "
            f"interval {self.sweep_interval_ms}ms)"
        )

    async def stop(self) -> None:
        """Cancel the background sweep and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Timeout sweep stopped")

    async def _sweep_loop(self) -> None:
        interval = self.sweep_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Timeout sweep failed")
