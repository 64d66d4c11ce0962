"""
Poller - Named, cancellable fixed-interval retry tasks.

Replaces the page-global ``window['name'] = setInterval(...)`` handle
pattern with an explicit registry object: one active task per name,
each task holding its own cancellation token. Everything runs on the
caller's thread; the only waiting happens between ticks.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import logging
import time

logger = logging.getLogger(__name__)

# A probe returns the finished result, or None for "not ready yet"
Probe = Callable[[], Optional[Any]]


class TaskState(str, Enum):
    """Lifecycle of a poll task."""
    POLLING = "polling"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CancellationToken:
    """One-way flag shared between a task and whoever may cancel it."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class PollTask:
    """A single named polling task."""
    name: str
    probe: Probe
    interval_s: float
    on_ready: Callable[[Any], None]
    on_failed: Optional[Callable[["PollTask"], None]] = None
    max_attempts: Optional[int] = None
    deadline_s: Optional[float] = None
    token: CancellationToken = field(default_factory=CancellationToken)
    state: TaskState = TaskState.POLLING
    attempts: int = 0
    started_at: float = 0.0
    next_due: float = 0.0
    result: Any = None
    last_error: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.state == TaskState.POLLING and not self.token.cancelled


class TaskRegistry:
    """
    Per-name registry of poll tasks.

    Invariant: at most one active task per name. Installing a task
    under a taken name cancels the previous one first.
    """

    def __init__(self):
        self._tasks: Dict[str, PollTask] = {}

    def start(self, task: PollTask) -> PollTask:
        """Install ``task``, cancelling any previous task of the same name."""
        self.cancel(task.name)
        self._tasks[task.name] = task
        return task

    def cancel(self, name: str) -> bool:
        """Cancel the task registered under ``name``. False if none."""
        task = self._tasks.pop(name, None)
        if task is None:
            return False
        task.token.cancel()
        if task.state == TaskState.POLLING:
            task.state = TaskState.CANCELLED
            logger.info(f"Cancelled poll task '{name}' after {task.attempts} attempts")
        return True

    def finish(self, task: PollTask) -> None:
        """Drop a task that reached a terminal state."""
        if self._tasks.get(task.name) is task:
            del self._tasks[task.name]

    def get(self, name: str) -> Optional[PollTask]:
        return self._tasks.get(name)

    def active(self) -> List[PollTask]:
        return [t for t in self._tasks.values() if t.is_active]

    def clear(self) -> None:
        """Cancel everything (process teardown)."""
        for name in list(self._tasks):
            self.cancel(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)


class Poller:
    """
    Drives poll tasks tick by tick.

    Example:
        >>> poller = Poller()
        >>> poller.start("ready", probe=lambda: page_ready() or None,
        ...              interval_ms=500, on_ready=print)
        >>> poller.run_until_idle(timeout=30)
    """

    def __init__(
        self,
        registry: Optional[TaskRegistry] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        recorder: Optional[Any] = None,
    ):
        """
        Initialize the poller.

        Args:
            registry: Task registry to use (a fresh one by default)
            clock: Monotonic clock in seconds
            sleep: Blocking sleep used between ticks
            recorder: Optional FlightRecorder for logging
        """
        self.registry = registry if registry is not None else TaskRegistry()
        self.clock = clock
        self.sleep = sleep
        self.recorder = recorder

    def start(
        self,
        name: str,
        probe: Probe,
        interval_ms: int,
        on_ready: Callable[[Any], None],
        on_failed: Optional[Callable[[PollTask], None]] = None,
        max_attempts: Optional[int] = None,
        deadline_s: Optional[float] = None,
    ) -> PollTask:
        """Start a named task. The first tick is due immediately."""
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        now = self.clock()
        task = PollTask(
            name=name,
            probe=probe,
            interval_s=interval_ms / 1000.0,
            on_ready=on_ready,
            on_failed=on_failed,
            max_attempts=max_attempts,
            deadline_s=deadline_s,
            started_at=now,
            next_due=now,
        )
        self.registry.start(task)
        logger.info(f"Started poll task '{name}' every {interval_ms}ms")
        return task

    def tick(self, task: PollTask) -> bool:
        """
        Run one attempt of ``task``.

        Returns:
            True if the task delivered on this tick
        """
        if not task.is_active:
            return False

        task.attempts += 1
        task.next_due = self.clock() + task.interval_s

        try:
            result = task.probe()
        except Exception as e:
            # The page may be mid-navigation; treat as not ready
            task.last_error = str(e)
            logger.warning(f"Poll task '{task.name}' attempt {task.attempts} raised: {e}")
            result = None

        if result is not None:
            task.result = result
            task.state = TaskState.DELIVERED
            task.token.cancel()
            self.registry.finish(task)
            logger.info(f"Poll task '{task.name}' delivered after {task.attempts} attempts")
            if self.recorder:
                self.recorder.log_delivery(task.name, task.attempts, result)
            task.on_ready(result)
            return True

        logger.debug(f"Poll task '{task.name}' not ready (attempt {task.attempts})")
        if self.recorder:
            self.recorder.log_tick(task.name, task.attempts)

        if self._exhausted(task):
            self._fail(task)
        return False

    def run_pending(self) -> int:
        """Tick every task that is due. Returns the number delivered."""
        now = self.clock()
        delivered = 0
        for task in self.registry.active():
            if task.next_due <= now and self.tick(task):
                delivered += 1
        return delivered

    def run_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Keep ticking until no active task remains.

        Args:
            timeout: Give up after this many seconds (None waits forever)

        Returns:
            True if the registry drained, False on timeout
        """
        started = self.clock()
        while self.registry.active():
            self.run_pending()
            active = self.registry.active()
            if not active:
                break
            now = self.clock()
            if timeout is not None and now - started >= timeout:
                logger.warning(f"Gave up waiting on {len(active)} poll task(s) after {timeout}s")
                return False
            next_due = min(t.next_due for t in active)
            self.sleep(max(0.0, next_due - now))
        return True

    def _exhausted(self, task: PollTask) -> bool:
        if task.max_attempts is not None and task.attempts >= task.max_attempts:
            return True
        if task.deadline_s is not None and self.clock() - task.started_at >= task.deadline_s:
            return True
        return False

    def _fail(self, task: PollTask) -> None:
        task.state = TaskState.FAILED
        task.token.cancel()
        self.registry.finish(task)
        logger.warning(f"Poll task '{task.name}' failed after {task.attempts} attempts")
        if self.recorder:
            self.recorder.log_failure(task.name, task.attempts, task.last_error)
        if task.on_failed:
            task.on_failed(task)
