"""
Runtime clients for the Container Orchestration System.

This module isolates all knowledge of the container runtime's command syntax
and output format. The rest of the system only sees ContainerSpec and
ContainerSnapshot values and RuntimeInvocationError failures.
"""

import logging
from typing import Optional

from container_orcha.config import Settings
from container_orcha.core.errors import RuntimeInvocationError
from container_orcha.models.container import ContainerSnapshot, ContainerSpec
from container_orcha.models.enums import RuntimeBackend
from container_orcha.utils.runtime_utils import build_run_args, is_not_found_error, run_runtime_command


logger = logging.getLogger('container_orchestrator.runtime')

INSPECT_FORMAT = "{{.Id}},{{.State.Status}},{{.Name}},{{.Config.Image}}"


class RuntimeClient:
    """
    Interface every runtime backend implements.

    All methods block until the runtime answers and raise
    RuntimeInvocationError on failure.
    """

    def run(self, spec: ContainerSpec) -> str:
        """Launch a detached container and return its id."""
        raise NotImplementedError

    def stop(self, container_id: str) -> None:
        raise NotImplementedError

    def remove(self, container_id: str) -> None:
        raise NotImplementedError

    def inspect(self, container_id: str) -> Optional[ContainerSnapshot]:
        """Return the container's snapshot, or None if it no longer exists."""
        raise NotImplementedError

    def logs(self, container_id: str, tail: int = 100) -> str:
        raise NotImplementedError


class CliRuntimeClient(RuntimeClient):
    """
    Drives podman or docker through their command-line interface.
    """
    def __init__(self, binary: str = "podman", timeout: Optional[float] = 60):
        self.binary = binary
        self.timeout = timeout

    def _invoke(self, args, action: str) -> str:
        logger.debug(f"Running {self.binary} {' '.join(args)}")
        returncode, stdout, stderr = run_runtime_command(self.binary, args, timeout=self.timeout)
        if returncode != 0:
            raise RuntimeInvocationError(f"Failed to {action}", stderr=stderr, returncode=returncode)
        return stdout

    def run(self, spec: ContainerSpec) -> str:
        args = build_run_args(
            name=spec.name,
            image=spec.image,
            command=spec.command,
            env=spec.env,
            ports=spec.ports,
            volumes=spec.volumes
        )
        container_id = self._invoke(args, f"run container {spec.name}").strip()
        if not container_id:
            raise RuntimeInvocationError(f"{self.binary} run returned no container id")
        return container_id

    def stop(self, container_id: str) -> None:
        self._invoke(['stop', container_id], f"stop container {container_id}")

    def remove(self, container_id: str) -> None:
        self._invoke(['rm', container_id], f"remove container {container_id}")

    def inspect(self, container_id: str) -> Optional[ContainerSnapshot]:
        args = ['inspect', '--format', INSPECT_FORMAT, container_id]
        returncode, stdout, stderr = run_runtime_command(self.binary, args, timeout=self.timeout)
        if returncode != 0:
            if is_not_found_error(stderr):
                return None
            raise RuntimeInvocationError(f"Failed to inspect container {container_id}",
                                         stderr=stderr, returncode=returncode)

        lines = stdout.strip().splitlines()
        fields = lines[0].split(',') if lines else []
        if len(fields) < 4:
            raise RuntimeInvocationError(f"Unexpected inspect output for {container_id}: {stdout.strip()!r}")

        # Image references never contain commas, names might
        container_ref, status = fields[0], fields[1]
        name = ','.join(fields[2:-1]).lstrip('/')
        image = fields[-1]
        return ContainerSnapshot(id=container_ref, status=status, name=name, image=image)

    def logs(self, container_id: str, tail: int = 100) -> str:
        args = ['logs', '--tail', str(tail), container_id]
        returncode, stdout, stderr = run_runtime_command(self.binary, args, timeout=self.timeout)
        if returncode != 0:
            raise RuntimeInvocationError(f"Failed to get logs for {container_id}",
                                         stderr=stderr, returncode=returncode)
        # The container's own stderr comes back on ours
        return stdout + stderr


def build_runtime_client(settings: Settings) -> RuntimeClient:
    """Create the runtime client selected by the settings."""
    backend = RuntimeBackend(settings.runtime)
    if backend == RuntimeBackend.DOCKER_SDK:
        from container_orcha.core.docker_runtime import DockerRuntimeClient
        return DockerRuntimeClient(base_url=settings.docker_base_url, timeout=settings.command_timeout)

    return CliRuntimeClient(binary=settings.runtime_binary or backend.value, timeout=settings.command_timeout)
