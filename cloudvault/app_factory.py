"""
Application Factory

Creates and configures the Flask application with all dependencies.
Settings and the dependency container can be injected for tests.
"""

import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS

from .application.dependency_container import DependencyContainer, build_container
from .config.celery_config import make_celery
from .config.logging_config import configure_logging
from .config.settings import Settings
from .domain.errors import ApplicationError, ErrorCategory, create_error_response

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[DependencyContainer] = None,
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        settings: Service settings, loaded from the environment if None
        container: Prebuilt dependency container, built from settings if None

    Returns:
        Configured Flask application
    """
    if settings is None:
        settings = Settings.from_env()
    configure_logging(settings.log_level)

    app = Flask(__name__)

    CORS(
        app,
        resources={
            r"/api/*": {
                "origins": settings.cors_origins,
                "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
                "allow_headers": ["Content-Type", "Authorization", "X-Owner-Id"],
                "expose_headers": [
                    "Content-Type",
                    "X-RateLimit-Limit",
                    "X-RateLimit-Remaining",
                    "X-RateLimit-Reset",
                    "Retry-After",
                ],
                "max_age": 3600,
            }
        },
    )

    app.container = container or build_container(settings)
    app.celery = make_celery(app, settings.celery)

    _register_blueprints(app)
    _register_error_handlers(app)
    return app


def _register_blueprints(app: Flask) -> None:
    from .api.v1 import api_v1_bp

    app.register_blueprint(api_v1_bp)
    logger.info("API v1 registered at /api/v1 with Swagger UI at /api/v1/docs")


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApplicationError)
    def handle_application_error(error: ApplicationError):
        logger.warning(f"{error.category.value}: {error.technical_message}")
        return error.to_dict(), error.http_status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        return create_error_response(ErrorCategory.INVALID_REQUEST, "Unknown route", status_code=404)
