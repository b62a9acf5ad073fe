"""
Task runner for Kubernetes catalog ingestor providers.

Every registered provider gets its own timer thread: it runs once at
start and then every `frequency` seconds. Each run executes in a worker
thread with a deadline of `timeout` seconds. When the deadline passes,
the run is recorded as timed out and the provider skips its catalog
mutation, leaving the previously published records in place.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from uuid import uuid4

from catalog_ingestor.catalog import EntityProvider
from catalog_ingestor.config import TaskRunnerConfig

logger = logging.getLogger(__name__)


@dataclass
class ProviderRun:
    """
    Result of one provider run.

    Attributes:
        task_id: ID of the task that produced this result
        run_id: Unique ID for this run
        started_at: When the run started
        completed_at: When the run finished or was abandoned
        success: Whether a catalog mutation was applied
        timed_out: Whether the run exceeded its timeout
        error: Error message if the run failed
    """

    task_id: str
    run_id: str
    started_at: datetime
    completed_at: datetime | None = None
    success: bool = False
    timed_out: bool = False
    error: str = ""

    @property
    def duration(self) -> timedelta | None:
        """Get the duration of the run."""
        if self.completed_at and self.started_at:
            return self.completed_at - self.started_at
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "task_id": self.task_id,
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "success": self.success,
            "timed_out": self.timed_out,
            "error": self.error,
            "duration_seconds": self.duration.total_seconds() if self.duration else None,
        }


@dataclass
class ProviderTask:
    """
    A provider scheduled at a fixed frequency.

    Attributes:
        id: Task identifier (the provider name)
        provider: Entity provider to run
        frequency: Time between run starts
        timeout: Maximum duration of a single run
        last_run: When the task last ran
        next_run: When the task will next run
        run_count: Number of completed runs
        last_result: Result of the last run
    """

    id: str
    provider: EntityProvider
    frequency: timedelta
    timeout: timedelta
    last_run: datetime | None = None
    next_run: datetime | None = None
    run_count: int = 0
    last_result: ProviderRun | None = None
    _worker: threading.Thread | None = field(default=None, repr=False)

    def __post_init__(self):
        if self.next_run is None:
            self.next_run = datetime.now(timezone.utc)

    def should_run(self, now: datetime | None = None) -> bool:
        """Check if the task is due."""
        if now is None:
            now = datetime.now(timezone.utc)
        return self.next_run is not None and now >= self.next_run

    def is_busy(self) -> bool:
        """Whether an earlier run is still executing."""
        return self._worker is not None and self._worker.is_alive()

    def mark_run(self, result: ProviderRun) -> None:
        """Record a run and schedule the next one from its start time."""
        self.last_run = result.started_at
        self.last_result = result
        self.run_count += 1
        self.next_run = result.started_at + self.frequency

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "frequency_seconds": self.frequency.total_seconds(),
            "timeout_seconds": self.timeout.total_seconds(),
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "run_count": self.run_count,
            "last_result": self.last_result.to_dict() if self.last_result else None,
        }


class TaskRunner:
    """
    Runs entity providers on independent timers.

    Example:
        >>> runner = TaskRunner()
        >>> runner.add_provider(provider, config.components.task_runner)
        >>> runner.start()
    """

    def __init__(self, log: logging.Logger | None = None):
        self._tasks: dict[str, ProviderTask] = {}
        self._threads: dict[str, threading.Thread] = {}
        self._stop = threading.Event()
        self._running = False
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[ProviderTask, ProviderRun], None]] = []
        self._logger = log or logger

    def add_provider(
        self, provider: EntityProvider, schedule: TaskRunnerConfig | None = None
    ) -> ProviderTask:
        """
        Register a provider.

        Args:
            provider: Connected entity provider
            schedule: Frequency and timeout (defaults to 600s each)

        Returns:
            The created ProviderTask

        Raises:
            ValueError: If a provider with the same name is registered
        """
        schedule = schedule or TaskRunnerConfig()
        task = ProviderTask(
            id=provider.get_provider_name(),
            provider=provider,
            frequency=timedelta(seconds=schedule.frequency),
            timeout=timedelta(seconds=schedule.timeout),
        )

        with self._lock:
            if task.id in self._tasks:
                raise ValueError(f"Provider {task.id} is already scheduled")
            self._tasks[task.id] = task
            if self._running:
                self._start_thread(task)

        return task

    def remove_task(self, task_id: str) -> bool:
        """
        Remove a task by ID.

        A timer thread already running for the task exits at its next
        wake-up.
        """
        with self._lock:
            if task_id in self._tasks:
                del self._tasks[task_id]
                return True
            return False

    def get_task(self, task_id: str) -> ProviderTask | None:
        """Get a task by ID."""
        return self._tasks.get(task_id)

    def get_tasks(self) -> list[ProviderTask]:
        """Get all tasks."""
        return list(self._tasks.values())

    def run_now(self, task_id: str) -> ProviderRun | None:
        """
        Run a task immediately regardless of schedule.

        Args:
            task_id: Task ID to run

        Returns:
            ProviderRun if executed, None if the task was not found or
            its previous run is still in progress
        """
        task = self._tasks.get(task_id)
        if not task:
            return None
        if task.is_busy():
            self._logger.warning(f"Previous run of {task_id} is still in progress; not running now")
            return None
        return self._execute_task(task)

    def add_callback(self, callback: Callable[[ProviderTask, ProviderRun], None]) -> None:
        """
        Add a callback to be called after each run.

        Args:
            callback: Function taking (ProviderTask, ProviderRun)
        """
        self._callbacks.append(callback)

    def start(self) -> None:
        """Start one timer thread per task."""
        with self._lock:
            if self._running:
                return
            self._running = True
            self._stop.clear()
            for task in self._tasks.values():
                self._start_thread(task)
        self._logger.info(f"Task runner started with {len(self._tasks)} tasks")

    def stop(self, timeout: float = 5) -> None:
        """Stop all timer threads."""
        with self._lock:
            self._running = False
            self._stop.set()
            threads = list(self._threads.values())
            self._threads.clear()
        for thread in threads:
            thread.join(timeout=timeout)
        self._logger.info("Task runner stopped")

    def is_running(self) -> bool:
        """Check if the runner is running."""
        return self._running

    def wait(self, timeout: float | None = None) -> bool:
        """Block until stop() is called or timeout elapses."""
        return self._stop.wait(timeout)

    def _start_thread(self, task: ProviderTask) -> None:
        thread = threading.Thread(
            target=self._task_loop,
            args=(task,),
            name=f"task-{task.id}",
            daemon=True,
        )
        self._threads[task.id] = thread
        thread.start()

    def _task_loop(self, task: ProviderTask) -> None:
        """Timer loop for a single task."""
        while not self._stop.is_set() and task.id in self._tasks:
            now = datetime.now(timezone.utc)
            if task.should_run(now):
                if task.is_busy():
                    self._logger.warning(
                        f"Previous run of {task.id} is still in progress; skipping this run"
                    )
                    task.next_run = now + task.frequency
                else:
                    try:
                        self._execute_task(task)
                    except Exception:
                        self._logger.exception(f"Unexpected error running {task.id}")
                        task.next_run = now + task.frequency

            delay = (task.next_run - datetime.now(timezone.utc)).total_seconds() if task.next_run else 1
            self._stop.wait(max(delay, 0.01))

    def _execute_task(self, task: ProviderTask) -> ProviderRun:
        """Execute one run of a task, bounded by its timeout."""
        started_at = datetime.now(timezone.utc)
        deadline = started_at + task.timeout
        result = ProviderRun(task_id=task.id, run_id=str(uuid4()), started_at=started_at)
        outcome: dict[str, Any] = {}

        def target() -> None:
            try:
                outcome["published"] = task.provider.run(deadline)
            except Exception as e:
                outcome["error"] = e

        worker = threading.Thread(target=target, name=f"run-{task.id}", daemon=True)
        task._worker = worker
        worker.start()
        worker.join(task.timeout.total_seconds())

        result.completed_at = datetime.now(timezone.utc)
        if worker.is_alive():
            result.timed_out = True
            result.error = f"timed out after {task.timeout.total_seconds():.0f}s"
            self._logger.error(f"{task.id} run {result.error}")
        elif "error" in outcome:
            result.error = str(outcome["error"])
            self._logger.error(f"{task.id} run failed: {result.error}")
        else:
            result.success = bool(outcome.get("published"))

        task.mark_run(result)

        for callback in self._callbacks:
            try:
                callback(task, result)
            except Exception:
                self._logger.exception(f"Run callback failed for {task.id}")

        return result

    def get_status(self) -> dict[str, Any]:
        """Get runner status."""
        return {
            "running": self._running,
            "total_tasks": len(self._tasks),
            "tasks": [task.to_dict() for task in self._tasks.values()],
        }
