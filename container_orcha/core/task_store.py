"""
Task store for the Container Orchestration System.

This module owns the authoritative in-memory map of tasks and its JSON
snapshot on disk. The file is a snapshot of the map, never a second source
of truth: every save overwrites it wholesale.
"""

import os
import copy
import json
import logging
import tempfile
import threading
from collections import Counter
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from container_orcha.core.errors import NotFoundError, PersistenceError, ValidationError
from container_orcha.models.enums import TaskStatus
from container_orcha.models.task import ATTRIBUTE_NAMES, Task, utc_now


logger = logging.getLogger('container_orchestrator.store')

# Fields a caller may supply when creating a task
CREATE_FIELDS = ('name', 'image', 'command', 'env', 'ports', 'volumes', 'auto_restart')


def _require_str_list(data: Dict[str, Any], key: str) -> Optional[List[str]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationError(f"Field '{key}' must be a list of strings")
    return list(value)


def validate_task_spec(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check a create request and normalize it to Task constructor arguments.

    Raises:
        ValidationError: If a required field is missing or a field has the wrong type
    """
    if not isinstance(data, dict):
        raise ValidationError("Task definition must be an object")
    data = {ATTRIBUTE_NAMES.get(key, key): value for key, value in data.items()}

    unknown = sorted(set(data) - set(CREATE_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(unknown)}")

    spec = {}
    for key in ('name', 'image'):
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Missing required field: {key}")
        spec[key] = value.strip()

    spec['command'] = _require_str_list(data, 'command')
    spec['ports'] = _require_str_list(data, 'ports')
    spec['volumes'] = _require_str_list(data, 'volumes')

    env = data.get('env')
    if env is not None:
        if not isinstance(env, dict) or not all(
                isinstance(k, str) and k and isinstance(v, str) for k, v in env.items()):
            raise ValidationError("Field 'env' must map variable names to string values")
        env = dict(env)
    spec['env'] = env

    auto_restart = data.get('auto_restart', False)
    if not isinstance(auto_restart, bool):
        raise ValidationError("Field 'auto_restart' must be a boolean")
    spec['auto_restart'] = auto_restart

    return spec


class TaskStore:
    """
    Thread-safe task map with JSON snapshot persistence.

    Records handed out by get() and list() are copies; all changes go
    through create(), update() and delete().
    """
    def __init__(self, state_path: str = "./container_states/orchestrator-state.json"):
        self.state_path = state_path
        self.tasks: Dict[str, Task] = {}
        self.lock = threading.RLock()

    def load(self):
        """Load saved tasks state from disk, starting empty if there is none."""
        if not os.path.exists(self.state_path):
            logger.info(f"No existing state file found at {self.state_path}, starting fresh")
            return

        try:
            with open(self.state_path, 'r') as f:
                state = json.load(f)

            tasks = {}
            for task_id, task_dict in (state.get('tasks') or {}).items():
                tasks[task_id] = Task.from_dict(task_dict)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Failed to load state from {self.state_path}, starting fresh: {str(e)}")
            return

        with self.lock:
            self.tasks = tasks
        logger.info(f"Loaded state with {len(tasks)} tasks")

    def save(self):
        """
        Save current tasks state to disk.

        Raises:
            PersistenceError: If the state file cannot be written
        """
        with self.lock:
            state = {
                'tasks': {task_id: task.to_dict() for task_id, task in self.tasks.items()},
                'lastSaved': utc_now(),
            }
            state_dir = os.path.dirname(os.path.abspath(self.state_path))
            try:
                os.makedirs(state_dir, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=state_dir, prefix='.state-', suffix='.json')
                try:
                    with os.fdopen(fd, 'w') as f:
                        json.dump(state, f, indent=2)
                    os.replace(tmp_path, self.state_path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.remove(tmp_path)
                    raise
            except OSError as e:
                logger.error(f"Failed to save state: {str(e)}")
                raise PersistenceError(f"Failed to save state to {self.state_path}: {e}")
            logger.debug(f"Saved state with {len(self.tasks)} tasks")

    def create(self, data: Dict[str, Any]) -> Task:
        """
        Create a new stopped task from a user-supplied definition.

        Returns:
            Task: A copy of the stored record
        """
        spec = validate_task_spec(data)
        now = utc_now()

        with self.lock:
            task_id = str(uuid4())
            while task_id in self.tasks:
                task_id = str(uuid4())

            task = Task(id=task_id, status=TaskStatus.STOPPED, created_at=now, updated_at=now, **spec)
            self.tasks[task_id] = task
            try:
                self.save()
            except PersistenceError:
                del self.tasks[task_id]
                raise
            logger.info(f"Created task {task.name} ({task_id})")
            return copy.deepcopy(task)

    def get(self, task_id: str) -> Optional[Task]:
        with self.lock:
            task = self.tasks.get(task_id)
            return copy.deepcopy(task) if task else None

    def list(self) -> List[Task]:
        with self.lock:
            return [copy.deepcopy(task) for task in self.tasks.values()]

    def __contains__(self, task_id: str) -> bool:
        with self.lock:
            return task_id in self.tasks

    def ids(self) -> List[str]:
        with self.lock:
            return list(self.tasks)

    def update(self, task_id: str, mutator: Callable[[Task], None], persist: bool = True) -> Task:
        """
        Apply a mutation to a task and refresh its updated_at stamp.

        Args:
            task_id: The ID of the task to update
            mutator: Callable receiving the stored task
            persist: Whether to save immediately; batch callers save once at the end

        Returns:
            Task: A copy of the updated record
        """
        with self.lock:
            task = self.tasks.get(task_id)
            if task is None:
                raise NotFoundError(f"Task {task_id} not found")

            mutator(task)
            task.updated_at = utc_now()
            if persist:
                self.save()
            return copy.deepcopy(task)

    def delete(self, task_id: str):
        with self.lock:
            if task_id not in self.tasks:
                raise NotFoundError(f"Task {task_id} not found")
            del self.tasks[task_id]
            self.save()

    def count_by_status(self) -> Dict[str, int]:
        with self.lock:
            counts = Counter(task.status.value for task in self.tasks.values())
        return {status.value: counts.get(status.value, 0) for status in TaskStatus}
