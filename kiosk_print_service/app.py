"""
Kiosk Print Service - Main Application
======================================

HTTP surface of the kiosk print dispatcher.

Run: python -m kiosk_print_service
"""

import logging
import platform
import socket
import sys
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime
from typing import Optional

from flask import Flask, request, jsonify
from flask_cors import CORS

from . import __version__
from .config import PORT, HOST, DEBUG, API_KEY, DATA_DIR, PRINT_REQUEST_TIMEOUT
from .errors import (
    KioskPrintError, DeviceNotFoundError, LabelFetchError, UnsupportedTransportError,
)
from .models import LabelDescriptor
from .runtime import KioskService

logger = logging.getLogger(__name__)

# =============================================================================
# Application Setup
# =============================================================================

app = Flask(__name__)
CORS(app)

_service: Optional[KioskService] = None


def init_service(service: KioskService) -> KioskService:
    """Attach the print service the endpoints talk to."""
    global _service
    _service = service
    return service


def _get_service() -> KioskService:
    if _service is None:
        raise RuntimeError('Print service not initialised')
    return _service


def _check_api_key():
    """Validate API key from request."""
    data = request.get_json(silent=True) or {}
    auth_header = request.headers.get('Authorization', '')

    # Check body
    if data.get('api_key') == API_KEY:
        return True

    # Check header (Bearer token)
    if auth_header.startswith('Bearer ') and auth_header[7:] == API_KEY:
        return True

    return False


def _error_status(error: Exception) -> int:
    """HTTP status for a failed print request."""
    if isinstance(error, UnsupportedTransportError):
        return 422
    if isinstance(error, DeviceNotFoundError):
        return 404
    if isinstance(error, (LabelFetchError, KioskPrintError)):
        return 502
    if isinstance(error, FutureTimeoutError):
        return 504
    return 500


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.route('/api', methods=['GET'])
def api_info():
    """API info (JSON)."""
    return jsonify({
        'service': 'Kiosk Print Service',
        'version': __version__,
        'status': 'running',
        'endpoints': {
            'health': '/health',
            'print': '/api/print',
            'discover': '/api/printers/discover',
            'settings': '/api/settings',
        }
    })


@app.route('/health', methods=['GET'])
def health():
    """Health check with system info."""
    service = _get_service()
    agent = service.agent

    return jsonify({
        'status': 'online',
        'version': __version__,
        'hostname': socket.gethostname(),
        'platform': platform.system(),
        'python': sys.version.split()[0],
        'agent': {
            'state': agent.state.value,
            'port': agent.port,
        } if agent is not None else None,
        'timestamp': datetime.now().isoformat(),
    })


# =============================================================================
# Printing
# =============================================================================

@app.route('/api/print', methods=['POST'])
def print_labels():
    """Fetch, merge and print a batch of check-in labels."""
    if not _check_api_key():
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'Request body required'}), 400

    raw_labels = data.get('labels')
    if not isinstance(raw_labels, list):
        return jsonify({'success': False, 'error': 'labels must be a list'}), 400

    try:
        labels = [LabelDescriptor.from_dict(item) for item in raw_labels]
    except (TypeError, AttributeError) as e:
        return jsonify({'success': False, 'error': f'Invalid label: {e}'}), 400

    try:
        jobs = _get_service().print_labels(labels, timeout=PRINT_REQUEST_TIMEOUT)
    except Exception as e:
        logger.error("Print request failed: %s", e)
        error = str(e) or type(e).__name__
        return jsonify({'success': False, 'error': error}), _error_status(e)

    return jsonify({
        'success': True,
        'jobs': [job.to_dict() for job in jobs],
        'count': len(jobs),
    })


# =============================================================================
# Discovery & Settings
# =============================================================================

@app.route('/api/printers/discover', methods=['GET'])
def discover_printers():
    """List printers attached to this kiosk."""
    try:
        printers = _get_service().discover_devices(timeout=PRINT_REQUEST_TIMEOUT)
    except Exception as e:
        logger.error("Discovery failed: %s", e)
        return jsonify({'success': False, 'error': str(e)}), 500

    return jsonify({
        'success': True,
        'discovered': [p.to_dict() for p in printers],
        'count': len(printers),
    })


@app.route('/api/settings', methods=['GET'])
def get_settings():
    """Settings in effect for the dispatcher."""
    return jsonify({
        'success': True,
        'settings': _get_service().settings.to_dict(),
    })


# =============================================================================
# Main
# =============================================================================

def main():
    """Run the service."""
    logging.basicConfig(
        level=logging.DEBUG if DEBUG else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    print("=" * 60)
    print("  Kiosk Print Service")
    print("=" * 60)
    print(f"  Version: {__version__}")
    print(f"  Port: {PORT}")
    print(f"  Data: {DATA_DIR}")
    print("=" * 60)
    print("  API Endpoints:")
    print("    GET  /health                          - Health check")
    print("    GET  /api                             - Service info")
    print("    POST /api/print                       - Print labels")
    print("    GET  /api/printers/discover           - Attached printers")
    print("    GET  /api/settings                    - Print settings")
    print("=" * 60)

    service = init_service(KioskService.from_config())
    service.start()
    try:
        app.run(host=HOST, port=PORT, debug=DEBUG, use_reloader=False)
    finally:
        service.stop()


if __name__ == '__main__':
    main()
