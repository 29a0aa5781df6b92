"""
In-memory runtime client used by the test suite.

Records every call and answers from plain attributes so tests can script
the runtime without podman or docker installed.
"""

from container_orcha.core.errors import RuntimeInvocationError
from container_orcha.core.runtime import RuntimeClient
from container_orcha.models.container import ContainerSnapshot


class StubRuntime(RuntimeClient):
    """Scriptable runtime: set the *_error attributes to make a call fail."""

    def __init__(self, container_id="abc123"):
        self.container_id = container_id
        self.calls = []
        self.containers = {}  # Container ID -> status
        self.run_error = None
        self.stop_error = None
        self.remove_error = None
        self.inspect_error = None
        self.logs_error = None
        self.log_output = "line 1\nline 2\n"
        self.on_run = None

    def _fail(self, error):
        if error is not None:
            raise RuntimeInvocationError("runtime failed", stderr=error)

    def run(self, spec):
        self.calls.append(('run', spec.name))
        if self.on_run is not None:
            self.on_run(spec)
        self._fail(self.run_error)
        self.containers[self.container_id] = "running"
        return self.container_id

    def stop(self, container_id):
        self.calls.append(('stop', container_id))
        self._fail(self.stop_error)
        if container_id in self.containers:
            self.containers[container_id] = "exited"

    def remove(self, container_id):
        self.calls.append(('remove', container_id))
        self._fail(self.remove_error)
        self.containers.pop(container_id, None)

    def inspect(self, container_id):
        self.calls.append(('inspect', container_id))
        self._fail(self.inspect_error)
        status = self.containers.get(container_id)
        if status is None:
            return None
        return ContainerSnapshot(id=container_id, status=status, name=f"c-{container_id}", image="img")

    def logs(self, container_id, tail=100):
        self.calls.append(('logs', container_id, tail))
        self._fail(self.logs_error)
        return self.log_output

    def count(self, action):
        return len([call for call in self.calls if call[0] == action])
