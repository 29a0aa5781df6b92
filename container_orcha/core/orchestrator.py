"""
Orchestrator for the Container Orchestration System.

This module is the single entry point the API layer and the reconciler use.
It composes the task store and a runtime client into lifecycle operations
with the state transitions and persistence built in:

    stopped/error --start--> pending --> running | error
    running       --stop---> stopped
    any           --remove-> (record deleted)

Runtime failures are never retried here; callers decide whether to retry.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from container_orcha.core.errors import PersistenceError, RuntimeInvocationError
from container_orcha.core.runtime import RuntimeClient
from container_orcha.core.task_store import TaskStore
from container_orcha.models.container import ContainerSpec
from container_orcha.models.enums import TaskStatus
from container_orcha.models.task import Task


logger = logging.getLogger('container_orchestrator')

DEFAULT_LOGS_TAIL = 100

# Failure codes carried by OperationResult
NOT_FOUND = "not_found"
INVALID_STATE = "invalid_state"
RUNTIME_ERROR = "runtime_error"
PERSISTENCE_ERROR = "persistence_error"


@dataclass
class OperationResult:
    """Outcome of a lifecycle operation as reported to callers."""
    success: bool
    message: str
    logs: Optional[str] = None
    code: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, message: str, **kwargs) -> "OperationResult":
        return cls(success=True, message=message, **kwargs)

    @classmethod
    def failure(cls, message: str, code: str) -> "OperationResult":
        return cls(success=False, message=message, code=code)

    def to_dict(self) -> Dict[str, Any]:
        data = {'success': self.success, 'message': self.message}
        if self.logs is not None:
            data['logs'] = self.logs
        if self.warnings:
            data['warnings'] = list(self.warnings)
        return data


class Orchestrator:
    """
    Lifecycle operations over stored tasks.

    Operations on the same task id are serialized by a per-task lock, which
    the reconciler shares; different tasks proceed concurrently.
    """
    def __init__(self, store: TaskStore, runtime: RuntimeClient, logs_tail: int = DEFAULT_LOGS_TAIL):
        self.store = store
        self.runtime = runtime
        self.logs_tail = logs_tail
        self._task_locks = {}  # Task ID -> lock
        self._locks_guard = threading.Lock()

    @contextmanager
    def task_lock(self, task_id: str):
        """
        Hold the (re-entrant) lock serializing operations on one task.

        Locks of ids that are not (or no longer) in the store are dropped
        on release.
        """
        with self._locks_guard:
            lock = self._task_locks.setdefault(task_id, threading.RLock())
        try:
            with lock:
                yield
        finally:
            if task_id not in self.store:
                self._forget_lock(task_id)

    def _forget_lock(self, task_id: str):
        with self._locks_guard:
            self._task_locks.pop(task_id, None)

    def create_task(self, data: Dict[str, Any]) -> Task:
        """
        Create a new task.

        Raises:
            ValidationError: If the definition is malformed
            PersistenceError: If the new state cannot be saved
        """
        return self.store.create(data)

    def list_tasks(self) -> List[Task]:
        return self.store.list()

    def get_task(self, task_id: str) -> Optional[Task]:
        return self.store.get(task_id)

    def start_task(self, task_id: str) -> OperationResult:
        """
        Start a task that is not already running.

        Args:
            task_id: The ID of the task to start

        Returns:
            OperationResult: Success flag and message
        """
        with self.task_lock(task_id):
            task = self.store.get(task_id)
            if task is None:
                return OperationResult.failure("Task not found", NOT_FOUND)
            if task.status == TaskStatus.RUNNING:
                return OperationResult.failure("Task is already running", INVALID_STATE)
            return self._start_locked(task)

    def restart_task(self, task_id: str) -> OperationResult:
        """
        Launch a task's container again regardless of its stored status.

        Used by the reconciler when a task that should be running has lost
        its container.
        """
        with self.task_lock(task_id):
            task = self.store.get(task_id)
            if task is None:
                return OperationResult.failure("Task not found", NOT_FOUND)
            return self._start_locked(task)

    def _start_locked(self, task: Task) -> OperationResult:
        spec = ContainerSpec.from_task(task)

        try:
            self.store.update(task.id, lambda t: setattr(t, 'status', TaskStatus.PENDING))
        except PersistenceError as e:
            self.store.update(task.id, lambda t: setattr(t, 'status', task.status), persist=False)
            return OperationResult.failure(str(e), PERSISTENCE_ERROR)

        # The container name is derived from the task id, so an old
        # container still holding it would make the run fail.
        if task.container_id:
            try:
                self.runtime.remove(task.container_id)
            except RuntimeInvocationError as e:
                logger.warning(f"Could not remove previous container {task.container_id} "
                               f"for task {task.id}: {str(e)}")

        try:
            container_id = self.runtime.run(spec)
        except RuntimeInvocationError as e:
            logger.error(f"Failed to start task {task.name} ({task.id}): {str(e)}")
            message = f"Failed to start task: {str(e)}"
            try:
                self.store.update(task.id, lambda t: setattr(t, 'status', TaskStatus.ERROR))
            except PersistenceError as pe:
                return OperationResult.failure(f"{message}; {str(pe)}", PERSISTENCE_ERROR)
            return OperationResult.failure(message, RUNTIME_ERROR)

        def mark_running(t: Task):
            t.container_id = container_id
            t.status = TaskStatus.RUNNING

        try:
            self.store.update(task.id, mark_running)
        except PersistenceError as e:
            return OperationResult.failure(str(e), PERSISTENCE_ERROR)

        logger.info(f"Started task {task.name} ({task.id}) in container {container_id}")
        return OperationResult.ok("Task started successfully")

    def stop_task(self, task_id: str) -> OperationResult:
        """
        Stop a task's container.

        The stored status is left alone when the runtime refuses.
        """
        with self.task_lock(task_id):
            return self._stop_locked(task_id)

    def _stop_locked(self, task_id: str) -> OperationResult:
        task = self.store.get(task_id)
        if task is None:
            return OperationResult.failure("Task not found", NOT_FOUND)
        if not task.container_id:
            return OperationResult.failure("No container ID found", NOT_FOUND)

        try:
            self.runtime.stop(task.container_id)
        except RuntimeInvocationError as e:
            logger.error(f"Failed to stop task {task.name} ({task_id}): {str(e)}")
            return OperationResult.failure(f"Failed to stop task: {str(e)}", RUNTIME_ERROR)

        try:
            self.store.update(task_id, lambda t: setattr(t, 'status', TaskStatus.STOPPED))
        except PersistenceError as e:
            return OperationResult.failure(str(e), PERSISTENCE_ERROR)

        logger.info(f"Stopped task {task.name} ({task_id})")
        return OperationResult.ok("Task stopped successfully")

    def remove_task(self, task_id: str) -> OperationResult:
        """
        Remove a task, stopping and removing its container on the way.

        Stopping and removing the container are best-effort: their failures
        are logged and reported as warnings but never block the removal.
        """
        with self.task_lock(task_id):
            task = self.store.get(task_id)
            if task is None:
                return OperationResult.failure("Task not found", NOT_FOUND)

            warnings = []
            if task.container_id and task.status == TaskStatus.RUNNING:
                stopped = self._stop_locked(task_id)
                if not stopped.success:
                    warnings.append(stopped.message)

            if task.container_id:
                try:
                    self.runtime.remove(task.container_id)
                except RuntimeInvocationError as e:
                    warnings.append(f"Failed to remove container: {str(e)}")

            for warning in warnings:
                logger.warning(f"Removing task {task.name} ({task_id}): {warning}")

            try:
                self.store.delete(task_id)
            except PersistenceError as e:
                return OperationResult.failure(str(e), PERSISTENCE_ERROR)

        logger.info(f"Removed task {task.name} ({task_id})")
        return OperationResult.ok("Task removed successfully", warnings=warnings)

    def get_logs(self, task_id: str, tail: Optional[int] = None) -> OperationResult:
        """Fetch the most recent log lines of a task's container, at most logs_tail of them."""
        task = self.store.get(task_id)
        if task is None or not task.container_id:
            return OperationResult.failure("Task or container not found", NOT_FOUND)

        try:
            logs = self.runtime.logs(task.container_id, tail=min(tail or self.logs_tail, self.logs_tail))
        except RuntimeInvocationError as e:
            return OperationResult.failure(f"Failed to get logs: {str(e)}", RUNTIME_ERROR)

        return OperationResult.ok("Logs retrieved", logs=logs)
