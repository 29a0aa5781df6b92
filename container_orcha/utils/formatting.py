"""
Formatting utilities for the Container Orchestration System.
"""

from datetime import datetime
from typing import Optional


STATUS_COLORS = {
    "stopped": "white",
    "pending": "yellow",
    "running": "green",
    "error": "red",
}


def format_time(timestamp: Optional[str]) -> str:
    """
    Format an ISO-8601 timestamp as a human-readable local time string.

    Args:
        timestamp: ISO-8601 timestamp, or None

    Returns:
        str: Formatted time string, or empty string if timestamp is None
    """
    if not timestamp:
        return ""

    try:
        moment = datetime.fromisoformat(timestamp)
    except ValueError:
        return timestamp

    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.strftime('%Y-%m-%d %H:%M:%S')


def short_id(identifier: Optional[str], length: int = 12) -> str:
    """Shorten a task or container id for display."""
    return (identifier or "")[:length]


def format_task_status(status: str) -> str:
    """Format task status with appropriate color."""
    color = STATUS_COLORS.get(status, 'white')
    return f"[{color}]{status}[/{color}]"
