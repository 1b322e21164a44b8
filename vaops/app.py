"""
vaops Flask Application.

Main entry point for the web application. Initializes:
- Database schema
- PIREP service and ACARS pipeline
- Live map cache, invalidated by position posts
- API routes and JSON error handlers

Usage:
    python -m vaops.app

Or with gunicorn:
    gunicorn 'vaops.app:create_app()'
"""

import logging
import os
from typing import Optional

from flask import Flask
from flask_cors import CORS
from sqlalchemy.engine import Engine

from vaops.api import acars_bp, pireps_bp
from vaops.cache import LiveFlightCache
from vaops.config import AppConfig, config
from vaops.exceptions import VaopsError
from vaops.ingestion import AcarsPipeline
from vaops.locks import pirep_locks
from vaops.models import SessionLocal, init_db, make_session_factory
from vaops.services import PirepFinanceService, PirepService

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[AppConfig] = None, engine: Optional[Engine] = None) -> Flask:
    """
    Application factory for Flask.

    Args:
        settings: Configuration to run with. Defaults to the environment.
        engine: Database engine to bind. Defaults to the configured one;
                tests pass a throwaway SQLite engine.

    Returns:
        Configured Flask application instance.
    """
    settings = settings or config

    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = settings.secret_key

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    # Initialize database
    logger.info('Initializing database...')
    init_db(engine)
    session_factory = make_session_factory(engine) if engine is not None else SessionLocal

    service = PirepService(
        settings=settings.pireps,
        session_factory=session_factory,
        locks=pirep_locks,
        finance=PirepFinanceService(settings.finance),
    )
    pipeline = AcarsPipeline(session_factory=session_factory, locks=pirep_locks)
    live_cache = LiveFlightCache(
        ttl_seconds=settings.cache.ttl_seconds,
        settings=settings.pireps,
        session_factory=session_factory,
    )

    # New positions show up on the next live map poll
    pipeline.add_update_callback(live_cache.invalidate)

    app.config['SESSION_FACTORY'] = session_factory
    app.config['PIREP_SERVICE'] = service
    app.config['ACARS_PIPELINE'] = pipeline
    app.config['LIVE_CACHE'] = live_cache

    # Register API blueprints
    app.register_blueprint(pireps_bp)
    app.register_blueprint(acars_bp)

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok'}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(VaopsError)
    def vaops_error(e: VaopsError):
        logger.info(f'{e.error}: {e.message}')
        return e.to_dict(), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'not-found', 'message': 'Not found'}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {'error': 'method-not-allowed', 'message': 'Method not allowed'}, 405

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'server-error', 'message': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    # Get port from environment or default
    port = int(os.environ.get('PORT', 5000))

    logger.info(f'Starting vaops on http://localhost:{port}')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
        use_reloader=False,
    )


if __name__ == '__main__':
    run_development_server()
