#!/usr/bin/env python3
"""
Runtime Client Test Suite

Tests the command-line runtime client against a mocked command runner and
the Docker SDK client against a mocked docker client. No container runtime
needs to be installed.

Usage:
  pytest test_runtime_client.py
"""

import subprocess
import unittest
from unittest.mock import MagicMock, patch

from docker.errors import APIError, NotFound

from container_orcha.config import Settings
from container_orcha.core.docker_runtime import DockerRuntimeClient
from container_orcha.core.errors import RuntimeInvocationError
from container_orcha.core.runtime import CliRuntimeClient, INSPECT_FORMAT, build_runtime_client
from container_orcha.models.container import ContainerSpec
from container_orcha.utils.runtime_utils import (
    LAUNCH_FAILURE_RETURNCODE, TIMEOUT_RETURNCODE, build_run_args, is_not_found_error,
    parse_port_mapping, run_runtime_command
)


WEB_SPEC = ContainerSpec(
    name="task-1234",
    image="nginx:latest",
    command=["nginx", "-g", "daemon off;"],
    env={"MODE": "prod"},
    ports=["8080:80"],
    volumes=["/srv/www:/usr/share/nginx/html"],
)


class TestRuntimeUtils(unittest.TestCase):
    """Test cases for the runtime command helpers"""

    def test_build_run_args_order(self):
        args = build_run_args(WEB_SPEC.name, WEB_SPEC.image, WEB_SPEC.command, WEB_SPEC.env,
                              WEB_SPEC.ports, WEB_SPEC.volumes)
        self.assertEqual(args, [
            'run', '-d', '--name', 'task-1234',
            '-p', '8080:80',
            '-v', '/srv/www:/usr/share/nginx/html',
            '-e', 'MODE=prod',
            'nginx:latest',
            'nginx', '-g', 'daemon off;',
        ])

    def test_build_run_args_without_command(self):
        args = build_run_args('task-1', 'alpine', [], {}, [], [])
        self.assertEqual(args, ['run', '-d', '--name', 'task-1', 'alpine'])

    @patch('container_orcha.utils.runtime_utils.subprocess.run')
    def test_run_runtime_command_captures_output(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="out", stderr="err")

        result = run_runtime_command('podman', ['ps'], timeout=5)

        self.assertEqual(result, (0, "out", "err"))
        mock_run.assert_called_once_with(['podman', 'ps'], capture_output=True, text=True,
                                         check=False, timeout=5)

    @patch('container_orcha.utils.runtime_utils.subprocess.run')
    def test_run_runtime_command_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd=['podman', 'stop'], timeout=5)

        returncode, stdout, stderr = run_runtime_command('podman', ['stop', 'abc'], timeout=5)

        self.assertEqual(returncode, TIMEOUT_RETURNCODE)
        self.assertIn("timed out", stderr)

    @patch('container_orcha.utils.runtime_utils.subprocess.run')
    def test_run_runtime_command_missing_binary(self, mock_run):
        mock_run.side_effect = FileNotFoundError("No such file or directory: 'podman'")

        returncode, _, stderr = run_runtime_command('podman', ['ps'])

        self.assertEqual(returncode, LAUNCH_FAILURE_RETURNCODE)
        self.assertIn("podman", stderr)

    def test_is_not_found_error(self):
        self.assertTrue(is_not_found_error("Error: no such container abc"))
        self.assertTrue(is_not_found_error("Error: No such object: abc"))
        self.assertFalse(is_not_found_error("Cannot connect to the Docker daemon"))

    def test_parse_port_mapping(self):
        self.assertEqual(parse_port_mapping("8080:80"), ("80/tcp", 8080))
        self.assertEqual(parse_port_mapping("5353:53/udp"), ("53/udp", 5353))
        self.assertEqual(parse_port_mapping("127.0.0.1:8080:80"), ("80/tcp", ("127.0.0.1", 8080)))
        self.assertEqual(parse_port_mapping("80"), ("80/tcp", None))
        with self.assertRaises(ValueError):
            parse_port_mapping("a:b:c:d")


class TestCliRuntimeClient(unittest.TestCase):
    """Test cases for the podman/docker command-line client"""

    def setUp(self):
        self.client = CliRuntimeClient(binary='podman', timeout=30)

    @patch('container_orcha.core.runtime.run_runtime_command')
    def test_run_returns_container_id(self, mock_cmd):
        mock_cmd.return_value = (0, "abc123\n", "")

        container_id = self.client.run(WEB_SPEC)

        self.assertEqual(container_id, "abc123")
        binary, args = mock_cmd.call_args[0]
        self.assertEqual(binary, 'podman')
        self.assertEqual(args[:4], ['run', '-d', '--name', 'task-1234'])
        self.assertEqual(mock_cmd.call_args[1], {'timeout': 30})

    @patch('container_orcha.core.runtime.run_runtime_command')
    def test_run_failure_carries_stderr(self, mock_cmd):
        mock_cmd.return_value = (125, "", "Error: image not known")

        with self.assertRaises(RuntimeInvocationError) as ctx:
            self.client.run(WEB_SPEC)

        self.assertEqual(ctx.exception.stderr, "Error: image not known")
        self.assertEqual(ctx.exception.returncode, 125)
        self.assertIn("image not known", str(ctx.exception))

    @patch('container_orcha.core.runtime.run_runtime_command')
    def test_stop_and_remove(self, mock_cmd):
        mock_cmd.return_value = (0, "abc123\n", "")

        self.client.stop("abc123")
        self.client.remove("abc123")

        self.assertEqual(mock_cmd.call_args_list[0][0], ('podman', ['stop', 'abc123']))
        self.assertEqual(mock_cmd.call_args_list[1][0], ('podman', ['rm', 'abc123']))

    @patch('container_orcha.core.runtime.run_runtime_command')
    def test_inspect_parses_snapshot(self, mock_cmd):
        mock_cmd.return_value = (0, "abc123,running,/task-1234,docker.io/library/nginx:latest\n", "")

        snapshot = self.client.inspect("abc123")

        self.assertEqual(snapshot.id, "abc123")
        self.assertEqual(snapshot.status, "running")
        self.assertEqual(snapshot.name, "task-1234")
        self.assertEqual(snapshot.image, "docker.io/library/nginx:latest")
        self.assertTrue(snapshot.is_running)
        self.assertEqual(mock_cmd.call_args[0][1], ['inspect', '--format', INSPECT_FORMAT, 'abc123'])

    @patch('container_orcha.core.runtime.run_runtime_command')
    def test_inspect_absent_container_returns_none(self, mock_cmd):
        mock_cmd.return_value = (125, "", "Error: no such container abc123")

        self.assertIsNone(self.client.inspect("abc123"))

    @patch('container_orcha.core.runtime.run_runtime_command')
    def test_inspect_other_failure_raises(self, mock_cmd):
        mock_cmd.return_value = (125, "", "Error: cannot connect to podman socket")

        with self.assertRaises(RuntimeInvocationError):
            self.client.inspect("abc123")

    @patch('container_orcha.core.runtime.run_runtime_command')
    def test_inspect_garbled_output_raises(self, mock_cmd):
        mock_cmd.return_value = (0, "abc123\n", "")

        with self.assertRaises(RuntimeInvocationError):
            self.client.inspect("abc123")

    @patch('container_orcha.core.runtime.run_runtime_command')
    def test_logs_combines_streams(self, mock_cmd):
        mock_cmd.return_value = (0, "stdout line\n", "stderr line\n")

        logs = self.client.logs("abc123", tail=50)

        self.assertEqual(logs, "stdout line\nstderr line\n")
        self.assertEqual(mock_cmd.call_args[0][1], ['logs', '--tail', '50', 'abc123'])


class TestDockerRuntimeClient(unittest.TestCase):
    """Test cases for the Docker SDK client"""

    def setUp(self):
        self.docker_client = MagicMock()
        self.client = DockerRuntimeClient(client=self.docker_client)

    def test_run_translates_spec(self):
        self.docker_client.containers.run.return_value = MagicMock(id="abc123")

        self.assertEqual(self.client.run(WEB_SPEC), "abc123")

        self.docker_client.containers.run.assert_called_once_with(
            "nginx:latest",
            ["nginx", "-g", "daemon off;"],
            name="task-1234",
            detach=True,
            ports={"80/tcp": 8080},
            volumes=["/srv/www:/usr/share/nginx/html"],
            environment={"MODE": "prod"},
        )

    def test_run_failure(self):
        self.docker_client.containers.run.side_effect = APIError("Conflict")

        with self.assertRaises(RuntimeInvocationError):
            self.client.run(WEB_SPEC)

    def test_inspect_missing_returns_none(self):
        self.docker_client.containers.get.side_effect = NotFound("gone")

        self.assertIsNone(self.client.inspect("abc123"))

    def test_inspect_snapshot(self):
        container = MagicMock(id="abc123", status="exited", attrs={'Config': {'Image': 'nginx:latest'}})
        container.name = "task-1234"
        self.docker_client.containers.get.return_value = container

        snapshot = self.client.inspect("abc123")

        self.assertEqual(snapshot.status, "exited")
        self.assertEqual(snapshot.name, "task-1234")
        self.assertEqual(snapshot.image, "nginx:latest")
        self.assertFalse(snapshot.is_running)

    def test_stop_missing_container_raises(self):
        self.docker_client.containers.get.side_effect = NotFound("gone")

        with self.assertRaises(RuntimeInvocationError):
            self.client.stop("abc123")

    def test_logs_decodes_output(self):
        container = MagicMock()
        container.logs.return_value = b"hello\n"
        self.docker_client.containers.get.return_value = container

        self.assertEqual(self.client.logs("abc123", tail=10), "hello\n")
        container.logs.assert_called_once_with(tail=10)


class TestBuildRuntimeClient(unittest.TestCase):
    """Test cases for runtime backend selection"""

    def test_podman_default(self):
        client = build_runtime_client(Settings())
        self.assertIsInstance(client, CliRuntimeClient)
        self.assertEqual(client.binary, 'podman')
        self.assertEqual(client.timeout, 60)

    def test_docker_cli_with_custom_binary(self):
        client = build_runtime_client(Settings(runtime='docker', runtime_binary='/usr/local/bin/docker'))
        self.assertEqual(client.binary, '/usr/local/bin/docker')

    def test_docker_sdk(self):
        client = build_runtime_client(Settings(runtime='docker-sdk', docker_base_url='unix://var/run/docker.sock'))
        self.assertIsInstance(client, DockerRuntimeClient)
        self.assertEqual(client.base_url, 'unix://var/run/docker.sock')


if __name__ == '__main__':
    unittest.main()
