"""
Flask routes for PhotoClean.

Exposes the analysis orchestrator to a presentation layer: start a run,
cancel it, poll its status and fetch the duplicate groups.
"""

from __future__ import annotations

import logging
from datetime import datetime

from flask import Blueprint, jsonify, request

from ..exceptions import ConcurrentRunRejected
from ..models import AnalysisConfig
from ..orchestrator import AnalysisOrchestrator
from ..pipeline import find_image_files
from ..utils import validators

# Create blueprint for routes
api = Blueprint('api', __name__)

# Module logger
_logger = logging.getLogger(__name__)

# Shared orchestrator for the application
orchestrator = AnalysisOrchestrator()


def get_orchestrator() -> AnalysisOrchestrator:
    """Return the orchestrator used by the routes."""
    return orchestrator


@api.route('/api/scan', methods=['POST'])
def api_scan():
    """Discover images in a directory and start analysing them in the background."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'Request body required'}), 400

    directory = str(data.get('directory', '')).strip()
    threshold = data.get('threshold')
    workers = data.get('workers')
    check_interval = data.get('checkInterval')
    recursive = bool(data.get('recursive', True))

    is_valid, error = validators.validate_scan_params(
        directory=directory,
        threshold=threshold,
        workers=workers,
        check_interval=check_interval,
    )
    if not is_valid:
        return jsonify({'error': error}), 400

    orch = get_orchestrator()
    if orch.is_active:
        return jsonify({'error': 'An analysis is already running'}), 409

    try:
        config = AnalysisConfig.from_user_config(
            distance_threshold=float(threshold) if threshold is not None else None,
            stage_concurrency=int(workers) if workers is not None else None,
            cancellation_check_interval=int(check_interval) if check_interval is not None else None,
        )
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    refs = find_image_files(directory, recursive=recursive)

    try:
        handle = orch.start_run(refs, config)
    except ConcurrentRunRejected as e:
        return jsonify({'error': str(e)}), 409

    _logger.info(f"Started run {handle.run_id} for {directory} ({len(refs):,} images)")
    return jsonify({'status': 'started', 'run_id': handle.run_id, 'total_files': len(refs)})


@api.route('/api/cancel', methods=['POST'])
def api_cancel():
    """Cancel the current analysis."""
    if get_orchestrator().cancel():
        return jsonify({'status': 'cancel_requested'})
    return jsonify({'status': 'no_run_active'})


@api.route('/api/ping')
def api_ping():
    """Simple endpoint for connection monitoring."""
    return jsonify({'status': 'ok', 'time': datetime.now().isoformat()})


@api.route('/api/status')
def api_status():
    """Return current analysis status."""
    return jsonify(get_orchestrator().snapshot().to_status_dict())


@api.route('/api/groups')
def api_groups():
    """Return duplicate groups of the last completed run."""
    return jsonify(get_orchestrator().snapshot().to_groups_dict())


__all__ = ['api', 'get_orchestrator']
