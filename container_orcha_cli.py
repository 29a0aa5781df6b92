#!/usr/bin/env python3
"""
Container Orchestration CLI

Manage orchestrated container tasks through the REST API.
"""

from container_orcha.cli.commands import app


if __name__ == '__main__':
    app()
