# app.py
"""
Flask Application Factory for the CBM corporate site backend

This application factory wires together:
- SQLAlchemy document store for pages, sections, blogs, careers and offices
- Admin authentication (email OTP and password) with signed bearer tokens
- Async email delivery with Celery
- Machine translation, geocoding and file storage integrations
- Consistent JSON error envelopes and request logging
- Health checks for load balancers
"""

import os
import logging
import logging.handlers
from datetime import datetime
from http import HTTPStatus

from flask import Flask, request, jsonify, g, send_from_directory
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from cli import register_commands
from config import CONFIG_BY_NAME
from core.errors import ApiError
from core.extensions import db, limiter, cors
from core.security_manager import init_security_manager
from middleware.security import security_headers
from services.cache import cache
from services.geocoding import geocoder
from services.otp import otp_store
from services.storage import storage
from services.translation import translator
from tasks.email_sender import celery_app

from api.admin_auth import admin_auth_bp
from api.blogs import blogs_bp
from api.careers import careers_bp
from api.contact_offices import contact_offices_bp
from api.industry_stats import industry_stats_bp
from api.inquiries import inquiries_bp
from api.pages import pages_bp
from api.sections import sections_bp
from api.translate import translate_bp

SENSITIVE_ENDPOINT_MARKERS = ('auth', 'admin')


def setup_logging(app: Flask) -> None:
    """
    Configure application logging

    This setup provides:
    - Console output (or syslog when LOG_TO_SYSLOG is set)
    - Optional rotating file log with call-site detail
    - Quieter third-party loggers outside debug mode
    """
    # Remove default Flask handlers to avoid duplicate logs
    app.logger.handlers.clear()

    console_formatter = logging.Formatter(
        fmt='%(asctime)s %(name)s[%(process)d]: %(levelname)s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    detailed_formatter = logging.Formatter(
        fmt='%(asctime)s %(name)-20s %(levelname)-8s %(funcName)-15s:%(lineno)-4d %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    log_level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)

    if app.config.get('LOG_TO_SYSLOG'):
        handler = logging.handlers.SysLogHandler(
            address='/dev/log' if os.path.exists('/dev/log') else ('localhost', 514)
        )
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(console_formatter)
    handler.setLevel(log_level)

    handlers = [handler]

    log_file = app.config.get('LOG_FILE')
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setFormatter(detailed_formatter)
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    # Module loggers (api.*, services.*, core.*) share the root handlers
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    for h in handlers:
        root_logger.addHandler(h)
    app.logger.setLevel(log_level)

    # Suppress verbose third-party logs in production
    if not app.debug:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)


def configure_database(app: Flask) -> None:
    """
    Configure SQLAlchemy with connection pooling for server databases

    SQLite (development and tests) keeps the driver defaults.
    """
    database_url = app.config.get('DATABASE_URL', 'sqlite:///cbm_site.db')

    engine_options = {
        'pool_pre_ping': True,  # Verify connections before use
    }
    if not database_url.startswith('sqlite'):
        engine_options.update({
            'pool_size': app.config.get('DB_POOL_SIZE', 20),
            'max_overflow': app.config.get('DB_MAX_OVERFLOW', 10),
            'pool_recycle': 3600,   # Recycle connections every hour
        })
    if 'postgresql' in database_url:
        engine_options['connect_args'] = {
            'application_name': 'cbm_site',
            'connect_timeout': 10,
        }

    app.config['SQLALCHEMY_DATABASE_URI'] = database_url
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = engine_options
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    db.init_app(app)

    app.logger.info(f"Database configured: {database_url.split('@')[-1] if '@' in database_url else database_url}")


def configure_celery(app: Flask) -> None:
    """Point the Celery app at the configured broker"""
    celery_app.conf.update({
        'broker_url': app.config['CELERY_BROKER_URL'],
        'task_always_eager': app.config.get('CELERY_TASK_ALWAYS_EAGER', False),
        'task_eager_propagates': app.config.get('CELERY_TASK_ALWAYS_EAGER', False),
    })
    app.extensions['celery'] = celery_app
    app.logger.info("Celery configured")


def configure_security(app: Flask) -> None:
    """
    Configure token signing, rate limiting, CORS and proxy handling
    """
    init_security_manager(app)

    if app.config.get('REDIS_URL') and app.config.get('RATELIMIT_STORAGE_URI', 'memory://') == 'memory://':
        app.config['RATELIMIT_STORAGE_URI'] = app.config['REDIS_URL']
    limiter.init_app(app)

    cors.init_app(
        app,
        origins=app.config.get('CORS_ORIGINS', '*'),
        allow_headers=['Content-Type', 'Authorization'],
    )

    # Behind nginx in production
    if not app.debug and not app.testing:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    app.logger.info("Security features configured")


def configure_services(app: Flask) -> None:
    """Bind the integration singletons to the app configuration"""
    cache.init_app(app)
    otp_store.init_app(app)
    translator.init_app(app)
    storage.init_app(app)
    geocoder.init_app(app)


def register_blueprints(app: Flask) -> None:
    """
    Register all application blueprints (URL prefixes are set on each blueprint)
    """
    app.register_blueprint(admin_auth_bp)
    app.register_blueprint(blogs_bp)
    app.register_blueprint(careers_bp)
    app.register_blueprint(contact_offices_bp)
    app.register_blueprint(industry_stats_bp)
    app.register_blueprint(pages_bp)
    app.register_blueprint(sections_bp)
    app.register_blueprint(translate_bp)
    app.register_blueprint(inquiries_bp)

    @app.route('/uploads/<path:filename>')
    def uploaded_file(filename):
        """Files stored locally when cloud storage is not configured"""
        return send_from_directory(app.config['UPLOAD_FOLDER'], filename)

    app.logger.info("Application blueprints registered")


def _error_body(status_code: int, message: str, details=None) -> dict:
    try:
        error = HTTPStatus(status_code).phrase
    except ValueError:
        error = 'Error'
    body = {
        'success': False,
        'error': error,
        'message': message,
        'status_code': status_code,
    }
    if details:
        body['details'] = details
    return body


def configure_error_handlers(app: Flask) -> None:
    """
    Map every error to the JSON error envelope
    """
    @app.errorhandler(ApiError)
    def handle_api_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{request.method} {request.path} failed: {error.message}")
        return jsonify(_error_body(error.status_code, error.message, error.details)), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        messages = {
            404: 'The requested resource was not found',
            405: 'Method not allowed for this endpoint',
            413: 'Uploaded content is too large',
            429: 'Too many requests. Please try again later.',
        }
        if error.code == 429:
            app.logger.warning(f"Rate limit exceeded for {request.remote_addr}")
        elif error.code in (401, 403):
            app.logger.warning(f"Unauthorized access attempt from {request.remote_addr}")
        message = messages.get(error.code, error.description)
        return jsonify(_error_body(error.code, message)), error.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle unexpected exceptions"""
        if isinstance(e, SQLAlchemyError):
            db.session.rollback()
        app.logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify(_error_body(500, 'An unexpected error occurred')), 500


def configure_health_checks(app: Flask) -> None:
    """
    Configure health check endpoints for monitoring and load balancing
    """
    @app.route('/health')
    def health_check():
        """Basic health check endpoint"""
        return jsonify({
            'ok': True,
            'status': 'healthy',
            'timestamp': datetime.utcnow().isoformat(),
            'version': app.config.get('VERSION', '1.0.0')
        })

    @app.route('/health/detailed')
    def detailed_health_check():
        """Detailed health check with component status"""
        health_status = {
            'status': 'healthy',
            'timestamp': datetime.utcnow().isoformat(),
            'components': {}
        }

        try:
            db.session.execute(text('SELECT 1'))
            health_status['components']['database'] = 'healthy'
        except SQLAlchemyError as e:
            db.session.rollback()
            health_status['components']['database'] = f'unhealthy: {str(e)}'
            health_status['status'] = 'unhealthy'

        if cache.enabled:
            if cache.ping():
                health_status['components']['redis'] = 'healthy'
            else:
                health_status['components']['redis'] = 'unhealthy'
                health_status['status'] = 'unhealthy'
        else:
            health_status['components']['redis'] = 'not configured'

        health_status['components']['email'] = 'configured' if app.config.get('SMTP_USER') else 'not configured'
        health_status['components']['translation'] = 'enabled' if translator.enabled else 'disabled'
        health_status['components']['storage'] = 'cloud' if storage.cloud_enabled else 'local'

        status_code = 200 if health_status['status'] == 'healthy' else 503
        return jsonify(health_status), status_code


def configure_request_middleware(app: Flask) -> None:
    """
    Configure request/response middleware for security and monitoring
    """
    @app.before_request
    def before_request():
        """Execute before each request"""
        g.start_time = datetime.utcnow()

        # Security logging for sensitive endpoints
        if request.endpoint and any(marker in request.endpoint for marker in SENSITIVE_ENDPOINT_MARKERS):
            app.logger.info(f"Sensitive endpoint access: {request.endpoint} from {request.remote_addr}")

    @app.after_request
    def after_request(response):
        """Execute after each request"""
        response = security_headers(response)

        if hasattr(g, 'start_time'):
            duration = (datetime.utcnow() - g.start_time).total_seconds() * 1000
            if duration > app.config.get('SLOW_REQUEST_THRESHOLD', 1000):
                app.logger.warning(f"Slow request ({duration:.0f}ms): {request.method} {request.path}")
            app.logger.info(f"{request.method} {request.path} {response.status_code} {duration:.0f}ms")

        return response


def create_app(config_name: str = None) -> Flask:
    """
    Flask application factory

    Args:
        config_name: Configuration environment ('development', 'testing', 'production')

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    config_name = config_name or os.environ.get('FLASK_ENV', 'production')
    app.config.from_object(CONFIG_BY_NAME.get(config_name, CONFIG_BY_NAME['production']))
    if not app.config.get('SECRET_KEY'):
        # admin tokens are signed with it and must verify on every worker
        raise RuntimeError('SECRET_KEY must be set outside development and testing')

    setup_logging(app)
    app.logger.info(f"Starting CBM site backend in {config_name} mode")

    configure_database(app)
    configure_celery(app)
    configure_security(app)
    configure_services(app)
    register_blueprints(app)
    configure_error_handlers(app)
    configure_health_checks(app)
    configure_request_middleware(app)

    register_commands(app)

    # Create database tables (in production, run `flask init-db`)
    if config_name == 'development':
        with app.app_context():
            db.create_all()
            app.logger.info("Database tables created (development mode)")

    app.logger.info("Flask application factory completed successfully")
    return app


if __name__ == '__main__':
    # Development server
    create_app('development').run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), debug=True)
