"""
Enumeration classes for the Container Orchestration System.
"""

from enum import Enum


class TaskStatus(str, Enum):
    """Possible states for a task."""
    STOPPED = "stopped"
    PENDING = "pending"
    RUNNING = "running"
    ERROR = "error"


class RuntimeBackend(str, Enum):
    """Container runtimes the orchestrator can drive."""
    PODMAN = "podman"
    DOCKER = "docker"
    DOCKER_SDK = "docker-sdk"
