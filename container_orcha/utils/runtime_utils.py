"""
Container runtime utility functions for the Container Orchestration System.
"""

import subprocess
from typing import Dict, List, Optional, Tuple


# Exit codes reported when the command never produced one of its own
TIMEOUT_RETURNCODE = 124
LAUNCH_FAILURE_RETURNCODE = 127

NOT_FOUND_MARKERS = ("no such container", "no such object", "no container with name or id")


def run_runtime_command(binary: str, args: List[str], timeout: Optional[float] = None) -> Tuple[int, str, str]:
    """
    Run a container runtime command.

    Args:
        binary: Runtime executable, e.g. ``podman`` or ``docker``
        args: Arguments following the executable
        timeout: Seconds to wait before giving up, or None to wait forever

    Returns:
        Tuple[int, str, str]: Return code, stdout, stderr
    """
    command = [binary] + list(args)
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout
        )
        return result.returncode, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return TIMEOUT_RETURNCODE, "", f"{binary} {args[0] if args else ''} timed out after {timeout}s"
    except OSError as e:
        return LAUNCH_FAILURE_RETURNCODE, "", str(e)


def build_run_args(name: str, image: str, command: List[str], env: Dict[str, str],
                   ports: List[str], volumes: List[str]) -> List[str]:
    """
    Build the argument list for a detached ``run`` invocation.

    Returns:
        List[str]: Arguments to pass after the runtime executable
    """
    args = ['run', '-d', '--name', name]

    for port in ports:
        args.extend(['-p', port])

    for volume in volumes:
        args.extend(['-v', volume])

    for key, value in env.items():
        args.extend(['-e', f"{key}={value}"])

    args.append(image)

    if command:
        args.extend(command)

    return args


def is_not_found_error(stderr: str) -> bool:
    """Whether runtime error output says the container does not exist."""
    lowered = stderr.lower()
    return any(marker in lowered for marker in NOT_FOUND_MARKERS)


def parse_port_mapping(spec: str) -> Tuple[str, object]:
    """
    Convert a ``[ip:]hostPort:containerPort[/proto]`` spec into the
    key/value pair the Docker SDK expects for its ``ports`` argument.

    Returns:
        Tuple[str, object]: Container port key, host binding
    """
    parts = spec.split(':')
    if len(parts) == 1:
        container_port, host = parts[0], None
    elif len(parts) == 2:
        host_port, container_port = parts
        host = int(host_port) if host_port else None
    elif len(parts) == 3:
        ip, host_port, container_port = parts
        if not host_port:
            raise ValueError(f"Invalid port mapping: {spec}")
        host = (ip, int(host_port))
    else:
        raise ValueError(f"Invalid port mapping: {spec}")

    if '/' not in container_port:
        container_port = f"{container_port}/tcp"
    return container_port, host
