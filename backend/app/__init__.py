"""Flask application factory and initialization."""
import logging

from flask import Flask, jsonify
from backend.app.config import Config
from backend.app import db


def create_app(config_class=Config):
    """Create and configure the Flask application.

    Args:
        config_class: Configuration class to use

    Returns:
        Flask: Configured Flask application instance
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    db.init_app(app)

    # Unique email/username indexes back the registration duplicate checks
    if app.config.get('ENSURE_INDEXES_ON_STARTUP', True):
        with app.app_context():
            if not db.ensure_indexes():
                logging.getLogger(__name__).warning('Could not ensure DB indexes at startup')

    # Register health check endpoint
    @app.route('/api/health')
    def health_check():
        """Health check endpoint with database connectivity."""
        response = {
            "status": "ok",
            "service": "forum-registration-api"
        }

        db_health = db.health_check()
        response["database"] = db_health
        if db_health.get("status") != "healthy":
            response["status"] = "degraded"

        return jsonify(response)

    register_blueprints(app)

    return app


def register_blueprints(app):
    """Register Flask blueprints with the application.

    Args:
        app: Flask application instance
    """
    # Import API blueprints here to avoid circular imports
    from backend.app.blueprints.api.auth.routes import auth_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
