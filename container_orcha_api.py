#!/usr/bin/env python3
"""
Container Orchestration System API Server

This script starts the API server for the Container Orchestration System.
"""

import sys
import logging
from dataclasses import replace

from container_orcha.api.server import start_api_server
from container_orcha.config import configure_logging, load_settings
from container_orcha.core.errors import ConfigurationError
from container_orcha.models.enums import RuntimeBackend


def main():
    """Main entry point for the API server."""
    import argparse

    parser = argparse.ArgumentParser(description='Container Orchestration System API Server')
    parser.add_argument('--config', help='YAML configuration file')
    parser.add_argument('--host', help='Host to bind to')
    parser.add_argument('--port', type=int, help='Port to bind to')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')
    parser.add_argument('--state-dir', help='Directory to store state in')
    parser.add_argument('--runtime', choices=[b.value for b in RuntimeBackend], help='Container runtime')

    args = parser.parse_args()

    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    overrides = {
        'host': args.host,
        'port': args.port,
        'state_dir': args.state_dir,
        'runtime': args.runtime,
    }
    settings = replace(settings, **{k: v for k, v in overrides.items() if v is not None})

    # Configure logging
    configure_logging("DEBUG" if args.debug else settings.log_level)
    logging.getLogger('container_orchestrator').debug(f"Using settings: {settings}")

    # Start the API server
    try:
        start_api_server(settings, debug=args.debug)
    except KeyboardInterrupt:
        print("Shutting down API server...")
        sys.exit(0)


if __name__ == '__main__':
    main()
