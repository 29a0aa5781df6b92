"""
Reconciler for the Container Orchestration System.

This module keeps stored task status in line with what the container runtime
reports and relaunches auto-restart tasks whose containers have gone away.
"""

import logging
import threading
from typing import Dict, Optional

from container_orcha.core.errors import NotFoundError, PersistenceError, RuntimeInvocationError
from container_orcha.core.orchestrator import Orchestrator, OperationResult
from container_orcha.models.container import ContainerSnapshot
from container_orcha.models.enums import TaskStatus


logger = logging.getLogger('container_orchestrator.reconciler')


class Reconciler:
    """
    Periodically reconciles stored tasks against the runtime.
    """
    def __init__(self, orchestrator: Orchestrator, check_interval: float = 10):
        """
        Initialize the reconciler.

        Args:
            orchestrator: The orchestrator whose tasks are reconciled
            check_interval: Seconds between timer-driven sweeps
        """
        self.orchestrator = orchestrator
        self.store = orchestrator.store
        self.runtime = orchestrator.runtime
        self.check_interval = check_interval
        self.thread = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self):
        """Start the timer-driven reconciliation thread."""
        if self.running:
            return False

        self._stop_event.clear()
        self.thread = threading.Thread(target=self._reconcile_loop, name="reconciler", daemon=True)
        self.thread.start()
        logger.info(f"Reconciler started (interval {self.check_interval}s)")
        return True

    def stop(self, timeout: Optional[float] = 10):
        """Stop the reconciliation thread and wait for the current sweep to finish."""
        if self.thread is None:
            return False

        self._stop_event.set()
        self.thread.join(timeout=timeout)
        if self.thread.is_alive():
            logger.warning(f"Reconciler did not stop within {timeout}s; a sweep is still running")
            return False

        self.thread = None
        logger.info("Reconciler stopped")
        return True

    def _reconcile_loop(self):
        """Main reconciliation loop."""
        while not self._stop_event.wait(self.check_interval):
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Error in reconcile loop: {str(e)}")

    def run_once(self) -> Dict[str, int]:
        """
        Run an auto-restart sweep followed by a status sync.

        Restarts go first so a dead container is still seen on a task
        stored as running.
        """
        restarted = self.restart_auto_restart_tasks()
        changed = self.sync_statuses()
        return {'status_changes': changed, 'restarts': restarted}

    def _observe(self, task_id: str, container_id: str) -> Optional[ContainerSnapshot]:
        try:
            snapshot = self.runtime.inspect(container_id)
        except RuntimeInvocationError as e:
            logger.warning(f"Could not inspect container {container_id} for task {task_id}: {str(e)}")
            return None

        if snapshot is None:
            logger.info(f"Container {container_id} for task {task_id} no longer exists")
        return snapshot

    def sync_statuses(self) -> int:
        """
        Set each task's stored status from its container's observed state.

        Changes are saved once at the end of the sweep.

        Returns:
            int: Number of tasks whose status changed
        """
        changed = 0
        for task_id in self.store.ids():
            with self.orchestrator.task_lock(task_id):
                task = self.store.get(task_id)
                if task is None or not task.container_id:
                    continue

                snapshot = self._observe(task_id, task.container_id)
                observed = TaskStatus.RUNNING if snapshot and snapshot.is_running else TaskStatus.STOPPED
                if observed == task.status:
                    continue

                try:
                    self.store.update(task_id, lambda t: setattr(t, 'status', observed), persist=False)
                except NotFoundError:
                    continue
                logger.info(f"Task {task.name} ({task_id}) is now {observed.value} (was {task.status.value})")
                changed += 1

        if changed:
            try:
                self.store.save()
            except PersistenceError as e:
                logger.error(f"Failed to persist status sync: {str(e)}")
        return changed

    def restart_auto_restart_tasks(self) -> int:
        """
        Relaunch auto-restart tasks whose containers are not running.

        Only tasks stored as running with a container reference are
        considered. There is no backoff: a broken runtime gets another
        attempt on every sweep.

        Returns:
            int: Number of restart attempts made
        """
        logger.debug("Checking for auto-restart tasks...")
        attempts = 0
        for task_id in self.store.ids():
            with self.orchestrator.task_lock(task_id):
                task = self.store.get(task_id)
                if task is None or not (task.auto_restart and task.status == TaskStatus.RUNNING
                                        and task.container_id):
                    continue

                snapshot = self._observe(task_id, task.container_id)
                if snapshot is not None and snapshot.is_running:
                    continue

                logger.info(f"Restarting task {task.name} ({task_id})")
                result: OperationResult = self.orchestrator.restart_task(task_id)
                attempts += 1
                if not result.success:
                    logger.error(f"Auto-restart of task {task.name} ({task_id}) failed: {result.message}")
        return attempts
