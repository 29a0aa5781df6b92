"""
Container models for the Container Orchestration System.

These describe what is sent to and read back from the container runtime.
They are never persisted.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from container_orcha.models.task import Task


CONTAINER_NAME_PREFIX = "task-"


def container_name_for(task_id: str) -> str:
    """Stable runtime container name for a task id."""
    return f"{CONTAINER_NAME_PREFIX}{task_id}"


@dataclass
class ContainerSpec:
    """Everything the runtime needs to launch a task's container."""
    name: str
    image: str
    command: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    ports: List[str] = field(default_factory=list)
    volumes: List[str] = field(default_factory=list)

    @classmethod
    def from_task(cls, task: Task) -> "ContainerSpec":
        return cls(
            name=container_name_for(task.id),
            image=task.image,
            command=list(task.command or []),
            env=dict(task.env or {}),
            ports=list(task.ports or []),
            volumes=list(task.volumes or []),
        )


@dataclass
class ContainerSnapshot:
    """Runtime view of a container at the instant it was inspected."""
    id: str
    status: str
    name: str
    image: str

    @property
    def is_running(self) -> bool:
        return self.status == "running"
