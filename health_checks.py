"""
Health Check & Monitoring Endpoints
/api/health (liveness), /api/ready (database + writable dirs),
/api/metrics (process, uptime and record counts), /api/ping
"""
import os
import time
import psutil
from datetime import datetime
from typing import Dict, Any
from flask import Blueprint, current_app, jsonify
from sqlalchemy import func
import logging

from database.connection import check_db_connection, get_db_session
from database.models import Appointment, Budget, Customer, Order, Organization, Product

logger = logging.getLogger(__name__)

SERVICE_NAME = 'bizdesk'

health_bp = Blueprint('health', __name__)

START_TIME = time.time()

# tables reported by /api/metrics, across all organizations
COUNTED_MODELS = {
    'organizations': Organization,
    'products': Product,
    'customers': Customer,
    'orders': Order,
    'budgets': Budget,
    'appointments': Appointment,
}


def get_system_metrics() -> Dict[str, Any]:
    """Memory and CPU of this worker process; empty when psutil cannot read them."""
    try:
        process = psutil.Process()
        return {
            'cpu_percent': process.cpu_percent(interval=0.1),
            'memory_mb': round(process.memory_info().rss / 1024 / 1024, 2),
            'memory_percent': round(process.memory_percent(), 2),
            'threads': process.num_threads(),
        }
    except Exception as e:
        logger.warning(f"Failed to get system metrics: {e}")
        return {}


def get_uptime() -> Dict[str, Any]:
    uptime_seconds = time.time() - START_TIME
    return {
        'uptime_seconds': round(uptime_seconds, 2),
        'uptime_minutes': round(uptime_seconds / 60, 2),
        'uptime_hours': round(uptime_seconds / 3600, 2),
        'started_at': datetime.fromtimestamp(START_TIME).isoformat()
    }


def check_database() -> Dict[str, Any]:
    try:
        check_db_connection()
        return {'connected': True}
    except RuntimeError as e:
        return {'connected': False, 'error': str(e)}


def check_filesystem(required_dirs) -> Dict[str, Dict[str, bool]]:
    """Existence and writability of each directory, relative to the working directory."""
    status = {}
    for dir_name in required_dirs:
        dir_path = os.path.join(os.getcwd(), dir_name)
        exists = os.path.exists(dir_path)
        writable = os.access(dir_path, os.W_OK) if exists else False
        status[dir_name] = {'exists': exists, 'writable': writable, 'healthy': exists and writable}
    return status


def count_records() -> Dict[str, int]:
    with get_db_session() as db:
        return {name: db.query(func.count(model.id)).scalar() or 0
                for name, model in COUNTED_MODELS.items()}


@health_bp.route('/health', methods=['GET'])
def health_check():
    """Liveness: the process answers"""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': SERVICE_NAME
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """Readiness: database reachable and every REQUIRED_DIRS entry writable"""
    database = check_database()
    filesystem = check_filesystem(current_app.config.get('REQUIRED_DIRS', []))
    filesystem_healthy = all(s['healthy'] for s in filesystem.values())
    is_ready = database['connected'] and filesystem_healthy

    return jsonify({
        'status': 'ready' if is_ready else 'not_ready',
        'timestamp': datetime.utcnow().isoformat(),
        'checks': {
            'database': database,
            'filesystem': filesystem,
            'filesystem_healthy': filesystem_healthy
        }
    }), 200 if is_ready else 503


@health_bp.route('/metrics', methods=['GET'])
def metrics():
    """Process metrics, uptime and record counts (counts only when the database answers)"""
    database = check_database()
    return jsonify({
        'timestamp': datetime.utcnow().isoformat(),
        'service': SERVICE_NAME,
        'uptime': get_uptime(),
        'system': get_system_metrics(),
        'database': database,
        'records': count_records() if database['connected'] else {},
    }), 200


@health_bp.route('/ping', methods=['GET'])
def ping():
    return 'pong', 200


def register_health_checks(app):
    app.register_blueprint(health_bp, url_prefix='/api')
    logger.info("Health check endpoints registered: /api/health, /api/ready, /api/metrics, /api/ping")
