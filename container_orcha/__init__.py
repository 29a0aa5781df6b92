"""
Container Orchestration System.

Manages named container workloads on top of podman or docker and keeps their
persisted state in line with what the runtime reports.
"""

__version__ = "0.2.0"
