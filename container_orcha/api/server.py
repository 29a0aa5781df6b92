"""
API server for the Container Orchestration System.

This module wires the orchestrator together and runs the API server:
construct, load state, run the startup auto-restart sweep, start the
reconciler, serve, and stop the reconciler on shutdown.
"""

import logging
from collections import namedtuple
from typing import Optional

from container_orcha.api.routes import create_app
from container_orcha.config import Settings, load_settings
from container_orcha.core.orchestrator import Orchestrator
from container_orcha.core.reconciler import Reconciler
from container_orcha.core.runtime import RuntimeClient, build_runtime_client
from container_orcha.core.task_store import TaskStore


logger = logging.getLogger('container_orchestrator.api')

Services = namedtuple('Services', ['store', 'runtime', 'orchestrator', 'reconciler'])


def build_services(settings: Settings, runtime: Optional[RuntimeClient] = None) -> Services:
    """
    Construct and load the orchestrator's components.

    Args:
        settings: Resolved settings
        runtime: Runtime client to use instead of the configured one

    Returns:
        Services: The wired components, reconciler not yet started
    """
    runtime = runtime or build_runtime_client(settings)
    store = TaskStore(state_path=settings.state_path)
    store.load()
    orchestrator = Orchestrator(store=store, runtime=runtime, logs_tail=settings.logs_tail)
    reconciler = Reconciler(orchestrator=orchestrator, check_interval=settings.reconcile_interval)
    return Services(store=store, runtime=runtime, orchestrator=orchestrator, reconciler=reconciler)


def start_reconciliation(services: Services) -> int:
    """
    Run the startup auto-restart sweep, then start the timer-driven reconciler.

    Returns:
        int: Number of restart attempts made by the startup sweep
    """
    restarted = services.reconciler.restart_auto_restart_tasks()
    logger.info(f"Startup sweep made {restarted} restart attempt(s)")
    services.reconciler.start()
    return restarted


def start_api_server(settings: Optional[Settings] = None, debug: bool = False):
    """
    Start the API server.

    Args:
        settings: Settings to run with; loaded from file and environment when omitted
        debug: Whether to enable debug mode
    """
    if settings is None:
        settings = load_settings()

    services = build_services(settings)
    app = create_app(services.orchestrator, services.reconciler)

    start_reconciliation(services)

    logger.info(f"Container orchestrator starting on {settings.host}:{settings.port} "
                f"(runtime: {settings.runtime})")
    try:
        # The reloader would fork a second orchestrator over the same state file
        app.run(host=settings.host, port=settings.port, debug=debug, use_reloader=False)
    finally:
        services.reconciler.stop()
