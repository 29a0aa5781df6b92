"""
Task model for the Container Orchestration System.
"""

from datetime import datetime, timezone
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional

from container_orcha.models.enums import TaskStatus


# Attribute name -> key used in the state file and API payloads
JSON_KEYS = {
    'container_id': 'containerId',
    'auto_restart': 'autoRestart',
    'created_at': 'createdAt',
    'updated_at': 'updatedAt',
}
ATTRIBUTE_NAMES = {key: name for name, key in JSON_KEYS.items()}


def utc_now() -> str:
    """Current time as an ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Task:
    """
    Represents a task in the Container Orchestration System.
    A task is a user-defined workload record; a container backs it only
    once a start attempt has succeeded.
    """
    id: str
    name: str
    image: str
    command: Optional[List[str]] = None
    env: Optional[Dict[str, str]] = None
    ports: Optional[List[str]] = None
    volumes: Optional[List[str]] = None
    status: TaskStatus = TaskStatus.STOPPED
    container_id: Optional[str] = None
    auto_restart: bool = False
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict:
        """Convert task to its JSON representation (camelCase keys)."""
        data = asdict(self)
        data['status'] = self.status.value
        return {JSON_KEYS.get(key, key): value for key, value in data.items()}

    @classmethod
    def from_dict(cls, data: Dict) -> "Task":
        """
        Build a task from its JSON representation.

        Both the camelCase keys written by to_dict() and the attribute
        names are accepted.
        """
        task_dict = {ATTRIBUTE_NAMES.get(key, key): value for key, value in data.items()}
        # Convert string enums back to enum values
        task_dict['status'] = TaskStatus(task_dict.get('status', TaskStatus.STOPPED.value))
        return cls(**task_dict)
