"""
API routes for the Container Orchestration System.

This module provides the REST API endpoints for managing tasks. The routes
only translate HTTP to orchestrator calls; all state handling lives in the
orchestrator.
"""

import logging
from typing import Optional

from flask import Flask, current_app, jsonify, request

from container_orcha.core.errors import PersistenceError, ValidationError
from container_orcha.core.orchestrator import (
    INVALID_STATE, NOT_FOUND, PERSISTENCE_ERROR, RUNTIME_ERROR, Orchestrator, OperationResult
)
from container_orcha.core.reconciler import Reconciler


logger = logging.getLogger('container_orchestrator.api')

STATUS_CODES = {
    NOT_FOUND: 404,
    INVALID_STATE: 409,
    RUNTIME_ERROR: 400,
    PERSISTENCE_ERROR: 500,
}


def _orchestrator() -> Orchestrator:
    return current_app.config['ORCHESTRATOR']


def _reconciler() -> Optional[Reconciler]:
    return current_app.config.get('RECONCILER')


def _result_response(result: OperationResult):
    status = 200 if result.success else STATUS_CODES.get(result.code, 400)
    return jsonify(result.to_dict()), status


def get_tasks():
    """Get list of tasks, optionally filtered by status."""
    status_filter = request.args.get('status')
    tasks = [task.to_dict() for task in _orchestrator().list_tasks()]
    if status_filter:
        tasks = [task for task in tasks if task['status'] == status_filter]
    return jsonify(tasks)


def create_task():
    """Create a new task."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid request body'}), 400

    try:
        task = _orchestrator().create_task(data)
    except ValidationError as e:
        return jsonify({'error': str(e)}), 400
    except PersistenceError as e:
        return jsonify({'error': str(e)}), 500

    return jsonify(task.to_dict()), 201


def get_task(task_id):
    """Get task details by ID."""
    task = _orchestrator().get_task(task_id)
    if not task:
        return jsonify({'error': 'Task not found'}), 404

    return jsonify(task.to_dict())


def start_task(task_id):
    """Start a task."""
    return _result_response(_orchestrator().start_task(task_id))


def stop_task(task_id):
    """Stop a task."""
    return _result_response(_orchestrator().stop_task(task_id))


def delete_task(task_id):
    """Remove a task and its container."""
    return _result_response(_orchestrator().remove_task(task_id))


def get_logs(task_id):
    """Get the last lines of a task's container logs."""
    tail = request.args.get('tail', type=int)
    if tail is not None and tail <= 0:
        return jsonify({'success': False, 'message': 'tail must be positive'}), 400
    return _result_response(_orchestrator().get_logs(task_id, tail=tail))


def system_status():
    """Get task counts and reconciler state."""
    counts = _orchestrator().store.count_by_status()
    reconciler = _reconciler()
    return jsonify({
        'tasks': dict(counts, total=sum(counts.values())),
        'reconciler_running': reconciler.running if reconciler else False,
        'reconcile_interval': reconciler.check_interval if reconciler else None,
    })


def reconcile():
    """Run one reconciliation pass now."""
    reconciler = _reconciler()
    if reconciler is None:
        return jsonify({'error': 'Reconciler not configured'}), 503

    summary = reconciler.run_once()
    return jsonify(dict(summary, result='success'))


def create_app(orchestrator: Orchestrator, reconciler: Optional[Reconciler] = None) -> Flask:
    """
    Build the Flask application around an orchestrator.

    Args:
        orchestrator: The orchestrator the routes delegate to
        reconciler: Optional reconciler exposed through the system endpoints

    Returns:
        Flask: The configured application
    """
    app = Flask(__name__)
    app.config['ORCHESTRATOR'] = orchestrator
    app.config['RECONCILER'] = reconciler

    app.add_url_rule('/api/tasks', view_func=get_tasks, methods=['GET'])
    app.add_url_rule('/api/tasks', view_func=create_task, methods=['POST'])
    app.add_url_rule('/api/tasks/<task_id>', view_func=get_task, methods=['GET'])
    app.add_url_rule('/api/tasks/<task_id>', view_func=delete_task, methods=['DELETE'])
    app.add_url_rule('/api/tasks/<task_id>/start', view_func=start_task, methods=['POST'])
    app.add_url_rule('/api/tasks/<task_id>/stop', view_func=stop_task, methods=['POST'])
    app.add_url_rule('/api/tasks/<task_id>/logs', view_func=get_logs, methods=['GET'])
    app.add_url_rule('/api/system/status', view_func=system_status, methods=['GET'])
    app.add_url_rule('/api/system/reconcile', view_func=reconcile, methods=['POST'])

    return app
