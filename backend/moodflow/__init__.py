"""
Application factory module.
"""
from typing import Optional, Dict, Any

from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from .models import db, migrate, TokenBlocklist
from .errors import MoodflowError
from .utils.logger import configure_logging
from .config.config import get_config, TestingConfig
from .utils.auth_adapter import get_auth_backend
from .utils.analysis_client import get_analysis_client
from .utils.payment_gateway import MockMpesaGateway


def create_app(test_config: Optional[Dict[str, Any]] = None) -> Flask:
    """Application factory for creating a Flask app instance.

    Args:
        test_config: Optional configuration dictionary for testing. Applied
            on top of TestingConfig.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__, instance_relative_config=True)

    # Load config
    if test_config is None:
        app.config.from_object(get_config())
    else:
        app.config.from_object(TestingConfig)
        app.config.from_mapping(test_config)

    # Configure logging (app.name is the package, so this covers every module logger)
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt = JWTManager(app)

    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        return TokenBlocklist.is_revoked(jwt_payload.get("jti"))

    cors_origins = app.config.get('CORS_ORIGINS') or []
    app.logger.info(f"Configuring CORS with origins: {cors_origins}")
    CORS(app, resources={r"/*": {
        "origins": cors_origins,
        "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        "allow_headers": ["Content-Type", "Authorization", "X-Requested-With"],
        "supports_credentials": True
    }})

    # External capabilities, replaceable in tests
    app.auth_backend = get_auth_backend(app)
    app.analysis_client = get_analysis_client(app.config)
    app.payment_gateway = MockMpesaGateway(delay=app.config.get('PAYMENT_SIMULATED_DELAY', 2.5))
    app.logger.info(f"Auth backend: {app.auth_backend.name}, "
                    f"analysis: {type(app.analysis_client).__name__}")

    @app.route('/health')
    def health_check():
        """Simple health check endpoint."""
        return {"status": "ok", "message": "App is running"}, 200

    @app.route('/api/health', methods=['GET'])
    def health():
        return {"status": "ok", "message": "Backend is healthy"}

    @app.errorhandler(MoodflowError)
    def handle_domain_error(error):
        app.logger.warning(f"Unhandled {type(error).__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    # Register blueprints
    from .api.auth import auth_bp
    from .api.profile import profile_bp
    from .api.journals import journals_bp
    from .api.analytics import analytics_bp
    from .api.wellness import wellness_bp
    from .api.billing import billing_bp
    from .api.reports import reports_bp

    app.register_blueprint(auth_bp, url_prefix='/api')
    app.register_blueprint(profile_bp, url_prefix='/api')
    app.register_blueprint(journals_bp, url_prefix='/api')
    app.register_blueprint(analytics_bp, url_prefix='/api')
    app.register_blueprint(wellness_bp, url_prefix='/api')
    app.register_blueprint(billing_bp, url_prefix='/api')
    app.register_blueprint(reports_bp, url_prefix='/api')

    # Shell context for Flask CLI
    @app.shell_context_processor
    def ctx():
        return {'app': app, 'db': db}

    return app
