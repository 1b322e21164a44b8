"""
Live map and system status endpoints.

Provides endpoints for:
- GET /api/acars - FeatureCollection of live flights
- GET /api/acars/status - Pipeline, cache and database health
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from vaops.config import config
from vaops.models import get_session

logger = logging.getLogger(__name__)

acars_bp = Blueprint('acars', __name__, url_prefix='/api/acars')


@acars_bp.route('', methods=['GET'])
def live_positions():
    """
    Last position of every live flight, as GeoJSON points.

    Served from the live cache; a position batch invalidates it.
    """
    return jsonify(current_app.config['LIVE_CACHE'].get_live_features())


@acars_bp.route('/status', methods=['GET'])
def get_system_status():
    """
    Get system health and status information.

    Returns:
    - ACARS pipeline counters
    - Database connectivity
    - Cache statistics
    """
    start_time = time.perf_counter()

    db_ok = True
    try:
        with get_session(current_app.config['SESSION_FACTORY']) as session:
            session.execute(text('SELECT 1'))
    except Exception as e:
        db_ok = False
        logger.error(f'Database health check failed: {e}')

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'status': 'healthy' if db_ok else 'degraded',
        'database': {
            'connected': db_ok,
            'type': 'sqlite' if config.database.is_sqlite else 'other',
        },
        'ingestion': current_app.config['ACARS_PIPELINE'].stats,
        'cache': current_app.config['LIVE_CACHE'].stats,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })
