"""
Loyalty points member portal
Flask application factory
"""
import os
import logging
from flask import Flask
from flask_cors import CORS

from .extensions import supabase, resource_state, inflight_redemptions
from .config import get_config, validate_config
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    # Setup logging before anything else
    setup_logging()

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))
    validate_config(app.config, config_name)

    # Initialize extensions
    supabase.init_app(app)
    resource_state.init_app(app)
    inflight_redemptions.init_app(app)

    # The browser front-end calls the API with the session cookie
    CORS(
        app,
        origins=app.config['CORS_ORIGINS'],
        supports_credentials=True,
        allow_headers=['Content-Type', 'Idempotency-Key'],
    )

    register_blueprints(app)
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {
            'status': 'healthy',
            'service': 'loyalty-portal',
            'supabase_configured': bool(app.extensions['supabase'].is_configured),
        }

    logger.info('Loyalty portal created (config=%s)', config_name)
    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    from .api.auth import auth_bp
    from .api.dashboard import dashboard_bp
    from .api.rewards import rewards_bp
    from .api.notifications import toasts_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(dashboard_bp, url_prefix='/api/dashboard')
    app.register_blueprint(rewards_bp, url_prefix='/api/rewards')
    app.register_blueprint(toasts_bp, url_prefix='/api/toasts')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from .utils import messages
    from .utils.errors import ErrorCode, error_response, internal_error
    from .utils.exceptions import PortalError

    @app.errorhandler(400)
    def bad_request(error):
        return error_response(messages.INVALID_REQUEST, ErrorCode.INVALID_REQUEST, 400,
                              log_error=False, toast=False)

    @app.errorhandler(404)
    def not_found(error):
        return error_response(messages.NOT_FOUND, ErrorCode.NOT_FOUND, 404,
                              log_error=False, toast=False)

    @app.errorhandler(PortalError)
    def portal_error(error):
        logger.error('Unhandled portal error [%s]: %s', error.code, error.message)
        return error_response(messages.SERVER_ERROR, ErrorCode.INTERNAL_ERROR, 500, log_error=False)

    @app.errorhandler(500)
    def server_error(error):
        return internal_error(messages.SERVER_ERROR, details={'error': str(error)})
