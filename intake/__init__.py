"""
TELUS CIO Project Intake Application

A multi-step wizard for submitting project proposals, with a review
dashboard for the intake team.

Enhanced with:
- CSRF protection
- Rate limiting
- Security headers
- Audit logging
- Server-side wizard sessions
"""

import os
import logging
from datetime import datetime
from flask import Flask, request, g, jsonify, render_template
from flask_session import Session
from flask_sqlalchemy import SQLAlchemy

# Initialize extensions
db = SQLAlchemy()
server_session = Session()


def create_app(test_config=None):
    """Application factory pattern."""
    app = Flask(__name__, instance_relative_config=True)

    # Default configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production'),
        SQLALCHEMY_DATABASE_URI=os.environ.get('DATABASE_URL', 'sqlite:///project_intake.db'),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        ADMIN_USERNAME=os.environ.get('ADMIN_USERNAME', ''),
        ADMIN_PASSWORD_HASH=os.environ.get('ADMIN_PASSWORD_HASH', ''),
        LOG_LEVEL=os.environ.get('LOG_LEVEL', 'INFO'),

        # Wizard state lives server-side
        SESSION_TYPE='filesystem',
        SESSION_FILE_DIR=os.environ.get('SESSION_FILE_DIR', os.path.join(app.instance_path, 'sessions')),
        SESSION_PERMANENT=False,
        SESSION_COOKIE_SECURE=os.environ.get('SESSION_COOKIE_SECURE', 'false').lower() == 'true',
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE='Lax',

        # CSRF settings
        WTF_CSRF_ENABLED=True,
        WTF_CSRF_TIME_LIMIT=3600,  # 1 hour
        WTF_CSRF_SSL_STRICT=False,  # Disabled for development

        # Rate limiting settings
        RATELIMIT_STORAGE_URI=os.environ.get('REDIS_URL', 'memory://'),
        RATELIMIT_STRATEGY='fixed-window',
        RATELIMIT_HEADERS_ENABLED=True,

        # Submissions
        SUBMISSION_ID_PREFIX=os.environ.get('SUBMISSION_ID_PREFIX', 'TELUS-CIO'),

        # AI feedback
        AI_FEEDBACK_API_URL=os.environ.get('AI_FEEDBACK_API_URL', 'https://api-beta.fuelix.ai'),
        AI_FEEDBACK_API_KEY=os.environ.get('AI_FEEDBACK_API_KEY', ''),
        AI_FEEDBACK_MODELS=os.environ.get('AI_FEEDBACK_MODELS', ''),
        AI_FEEDBACK_TIMEOUT=float(os.environ.get('AI_FEEDBACK_TIMEOUT', 30)),
    )

    if test_config is None:
        # Load instance config if it exists
        app.config.from_pyfile('config.py', silent=True)
    else:
        # Load test config
        app.config.from_mapping(test_config)

    os.makedirs(app.instance_path, exist_ok=True)
    if app.config['SESSION_TYPE'] == 'filesystem':
        os.makedirs(app.config['SESSION_FILE_DIR'], exist_ok=True)

    app.logger.setLevel(getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO))
    logging.getLogger('intake').setLevel(app.logger.level)

    # Initialize extensions with app
    db.init_app(app)
    server_session.init_app(app)

    # Import and initialize security (after db init to avoid circular imports)
    from intake.security import add_security_headers, init_security
    init_security(app)

    from intake.ai_feedback import AIFeedbackClient
    app.extensions['intake_ai_client'] = AIFeedbackClient.from_config(app.config)

    # Register blueprints
    from intake.routes import main_bp, api_bp, admin_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(admin_bp)

    @app.after_request
    def after_request(response):
        """Add security headers to all responses."""
        return add_security_headers(response)

    @app.before_request
    def before_request():
        g.request_start_time = datetime.utcnow()

    @app.after_request
    def log_request(response):
        """Log request completion."""
        if hasattr(g, 'request_start_time'):
            duration = (datetime.utcnow() - g.request_start_time).total_seconds()
            app.logger.info(
                f'{request.method} {request.path} - {response.status_code} - {duration:.3f}s'
            )
        return response

    # Create database tables
    with app.app_context():
        from intake import models  # noqa: F401
        db.create_all()

    @app.context_processor
    def inject_globals():
        return {
            'current_year': datetime.utcnow().year,
            'app_name': 'TELUS CIO Project Intake'
        }

    def _wants_json():
        return request.is_json or request.path.startswith('/api/')

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        if _wants_json():
            return jsonify({'ok': False, 'error': 'Not found'}), 404
        return render_template('base.html', error='Page not found'), 404

    @app.errorhandler(429)
    def rate_limited(error):
        if _wants_json():
            return jsonify({'ok': False, 'error': 'Rate limit exceeded. Please try again later.'}), 429
        return render_template('base.html', error='Too many requests. Please try again later.'), 429

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f'Internal error: {str(error)}')
        if _wants_json():
            return jsonify({'ok': False, 'error': 'Internal server error'}), 500
        return render_template('base.html', error='Internal server error'), 500

    return app
