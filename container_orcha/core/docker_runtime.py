"""
Docker SDK runtime client for the Container Orchestration System.

Talks to the Docker Engine API directly instead of shelling out to a
runtime binary.
"""

import logging
from typing import Optional

import docker
from docker.errors import DockerException, NotFound

from container_orcha.core.errors import RuntimeInvocationError
from container_orcha.core.runtime import RuntimeClient
from container_orcha.models.container import ContainerSnapshot, ContainerSpec
from container_orcha.utils.runtime_utils import parse_port_mapping


logger = logging.getLogger('container_orchestrator.runtime')


class DockerRuntimeClient(RuntimeClient):
    """
    Runtime client backed by the docker Python SDK.
    """
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = 60, client=None):
        self.base_url = base_url
        self.timeout = timeout
        self._client = client

    @property
    def client(self):
        if self._client is None:
            try:
                if self.base_url:
                    self._client = docker.DockerClient(base_url=self.base_url, timeout=int(self.timeout or 60))
                else:
                    self._client = docker.from_env(timeout=int(self.timeout or 60))
            except DockerException as e:
                raise RuntimeInvocationError("Failed to connect to Docker", stderr=str(e))
        return self._client

    def _get(self, container_id: str):
        try:
            return self.client.containers.get(container_id)
        except NotFound as e:
            raise RuntimeInvocationError(f"Container {container_id} not found", stderr=str(e))
        except DockerException as e:
            raise RuntimeInvocationError(f"Failed to look up container {container_id}", stderr=str(e))

    def run(self, spec: ContainerSpec) -> str:
        try:
            ports = dict(parse_port_mapping(port) for port in spec.ports)
        except ValueError as e:
            raise RuntimeInvocationError(f"Failed to run container {spec.name}", stderr=str(e))

        try:
            container = self.client.containers.run(
                spec.image,
                spec.command or None,
                name=spec.name,
                detach=True,
                ports=ports or None,
                volumes=spec.volumes or None,
                environment=spec.env or None,
            )
        except DockerException as e:
            raise RuntimeInvocationError(f"Failed to run container {spec.name}", stderr=str(e))

        logger.debug(f"Started container {container.id} for {spec.name}")
        return container.id

    def stop(self, container_id: str) -> None:
        container = self._get(container_id)
        try:
            container.stop(timeout=10)
        except DockerException as e:
            raise RuntimeInvocationError(f"Failed to stop container {container_id}", stderr=str(e))

    def remove(self, container_id: str) -> None:
        container = self._get(container_id)
        try:
            container.remove()
        except DockerException as e:
            raise RuntimeInvocationError(f"Failed to remove container {container_id}", stderr=str(e))

    def inspect(self, container_id: str) -> Optional[ContainerSnapshot]:
        try:
            container = self.client.containers.get(container_id)
        except NotFound:
            return None
        except DockerException as e:
            raise RuntimeInvocationError(f"Failed to inspect container {container_id}", stderr=str(e))

        image = container.attrs.get('Config', {}).get('Image', '')
        return ContainerSnapshot(
            id=container.id,
            status=container.status,
            name=container.name,
            image=image,
        )

    def logs(self, container_id: str, tail: int = 100) -> str:
        container = self._get(container_id)
        try:
            return container.logs(tail=tail).decode('utf-8', errors='replace')
        except DockerException as e:
            raise RuntimeInvocationError(f"Failed to get logs for {container_id}", stderr=str(e))
