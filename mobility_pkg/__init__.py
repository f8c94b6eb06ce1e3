from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from config import Config
from mobility_pkg.models import db
from mobility_pkg.schemas import ma
from mobility_pkg.auth import default_entity_client_factory
from mobility_pkg.error_handler import handle_exception
from logger_config import (
    app_logger,
    access_logger,
    error_logger
)

# Initialize extensions (without app binding)
limiter = Limiter(key_func=get_remote_address)


def create_app(config_class=Config, entity_client_factory=None):
    """
    Flask application factory

    Args:
        config_class: Configuration object
        entity_client_factory: Optional callable(token) -> EntityClient, tests inject a fake
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    ma.init_app(app)
    limiter.init_app(app)

    app.extensions['entity_client_factory'] = (
        entity_client_factory or default_entity_client_factory(app)
    )

    # Enable CORS with explicit origins for cookie support
    # When using credentials, must specify exact origins (cannot use *)
    CORS(
        app,
        supports_credentials=True,
        origins=app.config.get('ALLOWED_ORIGINS', [])
    )

    # Register blueprints
    try:
        from mobility_pkg.routes import (
            auth_routes,
            dashboard_routes,
            service_routes,
            orders_routes,
            inventory_routes,
            insurance_routes,
            payments_routes,
            users_routes,
            vehicles_routes,
            history_routes,
            health
        )

        app.register_blueprint(auth_routes.bp, url_prefix="/api" + (auth_routes.bp.url_prefix or ""))
        app.register_blueprint(dashboard_routes.bp, url_prefix="/api" + (dashboard_routes.bp.url_prefix or ""))
        app.register_blueprint(service_routes.bp, url_prefix="/api" + (service_routes.bp.url_prefix or ""))
        app.register_blueprint(orders_routes.bp, url_prefix="/api" + (orders_routes.bp.url_prefix or ""))
        app.register_blueprint(inventory_routes.bp, url_prefix="/api" + (inventory_routes.bp.url_prefix or ""))
        app.register_blueprint(insurance_routes.bp, url_prefix="/api" + (insurance_routes.bp.url_prefix or ""))
        app.register_blueprint(payments_routes.bp, url_prefix="/api" + (payments_routes.bp.url_prefix or ""))
        app.register_blueprint(users_routes.bp, url_prefix="/api" + (users_routes.bp.url_prefix or ""))
        app.register_blueprint(vehicles_routes.bp, url_prefix="/api" + (vehicles_routes.bp.url_prefix or ""))
        app.register_blueprint(history_routes.bp, url_prefix="/api" + (history_routes.bp.url_prefix or ""))
        app.register_blueprint(health.bp, url_prefix="/api" + (health.bp.url_prefix or ""))

        app_logger.info("All blueprints registered successfully")
    except Exception as e:
        app_logger.exception(f"Error registering blueprints: {e}")
        raise

    # Audit tables only; business entities live in the entity API
    with app.app_context():
        db.create_all()

    # Register handlers
    register_error_handlers(app)
    register_request_handlers(app)

    # Startup logs
    app_logger.info("Flask application initialized successfully")
    app_logger.info(f"Environment: {app.config.get('ENV')}")
    app_logger.info(f"Entity API: {app.config.get('ENTITY_API_BASE_URL')}")

    return app


def register_error_handlers(app):
    """
    Register global error handlers
    """

    def expects_json():
        if request.path.startswith("/api/"):
            return True
        if request.headers.get("Accept", "").startswith("application/json"):
            return True
        return False

    @app.errorhandler(404)
    def not_found(error):
        if expects_json():
            return jsonify({
                "error": "Endpoint not found",
                "path": request.path,
                "method": request.method
            }), 404
        return error

    @app.errorhandler(403)
    def forbidden(error):
        if expects_json():
            return jsonify({
                "error": "Forbidden",
                "message": "You do not have permission to access this resource"
            }), 403
        return error

    @app.errorhandler(405)
    def method_not_allowed(error):
        if expects_json():
            return jsonify({
                "error": "Method not allowed",
                "path": request.path,
                "method": request.method
            }), 405
        return error

    @app.errorhandler(429)
    def rate_limited(error):
        return jsonify({
            "error": "Too many requests",
            "message": str(getattr(error, 'description', '') or "Rate limit exceeded")
        }), 429

    @app.errorhandler(500)
    def internal_error(error):
        error_logger.exception("Internal server error")
        if expects_json():
            return jsonify({
                "error": "Internal server error",
                "message": "An unexpected error occurred"
            }), 500
        return error

    # Workflow, cart and entity API errors raised out of route handlers
    from mobility_pkg.entities import EntityAPIError
    from mobility_pkg.workflow import WorkflowError
    from mobility_pkg.cart import CartError

    @app.errorhandler(EntityAPIError)
    @app.errorhandler(WorkflowError)
    @app.errorhandler(CartError)
    def domain_error(error):
        return handle_exception(error, {"handler": "domain_error"})


def register_request_handlers(app):
    """
    Register before/after request handlers
    """

    @app.before_request
    def log_request():
        # Log API requests
        if request.path.startswith("/api/"):
            access_logger.info(
                f"{request.remote_addr} - {request.method} {request.path}"
            )

    @app.after_request
    def log_response(response):
        if request.path.startswith("/api/"):
            access_logger.info(
                f"{request.method} {request.path} - {response.status_code}"
            )

        # Security headers
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        return response
