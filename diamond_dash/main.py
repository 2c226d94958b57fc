"""
Diamond Dash - Flask Application
"""

from flask import Flask, request, jsonify
from flask_login import LoginManager
from werkzeug.middleware.proxy_fix import ProxyFix
from datetime import timedelta
from typing import Optional, Dict, Any
import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env file before settings are read
load_dotenv()

from . import config
from .routes import bp
from .auth_routes import auth_bp
from .auth import UserSession, limiter
from .storage import StorageManager


def create_app(config_overrides: Optional[Dict[str, Any]] = None):
    """Create and configure the Flask application"""
    app = Flask(__name__)
    overrides = dict(config_overrides or {})

    # SECRET_KEY must be set via environment variable - no default fallback
    secret_key = overrides.get('SECRET_KEY') or os.environ.get('SECRET_KEY', '').strip()
    if not secret_key:
        raise RuntimeError(
            "SECRET_KEY environment variable must be set. "
            "Generate a secure key with: python -c 'import secrets; print(secrets.token_hex(32))'"
        )
    if len(secret_key) < 32:
        raise RuntimeError(
            f"SECRET_KEY must be at least 32 characters. Current length: {len(secret_key)}. "
            "Generate a secure key with: python -c 'import secrets; print(secrets.token_hex(32))'"
        )
    app.config['SECRET_KEY'] = secret_key
    app.config['JSON_AS_ASCII'] = False
    app.config['MAX_CONTENT_LENGTH'] = 2 * 1024 * 1024

    # Secure session cookie configuration
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    # Only set Secure=True in production (HTTPS required)
    app.config['SESSION_COOKIE_SECURE'] = os.environ.get('FLASK_ENV') == 'production'
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=7)

    # Application settings
    app.config['DATA_DIR'] = config.DATA_DIR
    app.config['TEAM_NAME'] = config.TEAM_NAME
    app.config['PUBLIC_BASE_URL'] = config.PUBLIC_BASE_URL
    app.config['DEFAULT_MAX_WEEKLY_PITCHES'] = config.DEFAULT_MAX_WEEKLY_PITCHES
    app.config['PITCH_TYPE_FETCH_TIMEOUT'] = config.PITCH_TYPE_FETCH_TIMEOUT
    app.config['RATELIMIT_STORAGE_URI'] = "memory://"

    app.config.update(overrides)
    app.logger.setLevel(app.config.get('LOG_LEVEL', config.LOG_LEVEL))

    storage = StorageManager(app.config['DATA_DIR'])
    app.extensions['storage'] = storage

    # Initialize Flask-Login
    login_manager = LoginManager()
    login_manager.init_app(app)
    login_manager.session_protection = 'basic'

    @login_manager.user_loader
    def load_user(user_id):
        user = storage.get_user_by_id(user_id)
        if user:
            return UserSession(user)
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'errors': ['Please log in to access this page.']}), 401

    # Rate limiting for the auth endpoints
    limiter.init_app(app)
    app.logger.info("Rate limiting enabled")

    # Handle reverse proxy headers (X-Forwarded-*)
    num_proxies = int(os.environ.get('PROXY_FIX_NUM_PROXIES', '1'))
    if num_proxies > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=num_proxies, x_proto=num_proxies, x_host=num_proxies)
        app.logger.info(f"ProxyFix enabled with {num_proxies} proxy(ies)")

    # Register blueprints
    app.register_blueprint(bp)
    app.register_blueprint(auth_bp)

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint for load balancers and monitoring"""
        return jsonify({
            'status': 'healthy',
            'service': 'Diamond Dash'
        }), 200

    @app.errorhandler(500)
    def handle_500_error(e):
        """Return JSON for API errors without leaking details"""
        if request.path.startswith('/api/'):
            app.logger.error(f"500 error on {request.path}: {e}", exc_info=True)
            return jsonify({
                'success': False,
                'errors': ['An internal error occurred. Please try again later.']
            }), 500
        return e

    @app.errorhandler(404)
    def handle_404_error(e):
        """Return JSON for API 404 errors"""
        if request.path.startswith('/api/'):
            return jsonify({
                'success': False,
                'errors': ['Endpoint not found']
            }), 404
        return e

    @app.errorhandler(400)
    def handle_400_error(e):
        """Return JSON for 400 errors on JSON requests"""
        content_type = request.headers.get('Content-Type', '')
        if 'application/json' in content_type or request.path.startswith('/api/'):
            error_description = str(e.description) if hasattr(e, 'description') else str(e)
            return jsonify({
                'success': False,
                'errors': [error_description or 'Bad request']
            }), 400
        return e

    @app.errorhandler(429)
    def handle_rate_limit(e):
        return jsonify({
            'success': False,
            'errors': ['Too many attempts. Please wait a minute and try again.']
        }), 429

    return app


def main():
    """Main entry point - Development only"""
    flask_env = os.environ.get('FLASK_ENV', '').strip().lower()
    if flask_env == 'production':
        print("ERROR: Flask development server cannot run in production mode.")
        print("Use gunicorn or another production WSGI server instead:")
        print("  gunicorn -c gunicorn.conf.py wsgi:app")
        sys.exit(1)

    app = create_app()

    print("Diamond Dash starting in DEVELOPMENT mode...")
    print("Serving at http://127.0.0.1:8080")
    print("Press Ctrl+C to stop the application")
    print()
    print("WARNING: This is the development server. For production, use:")
    print("  gunicorn -c gunicorn.conf.py wsgi:app")

    try:
        app.run(host='127.0.0.1', port=8080, debug=False, threaded=False)
    except KeyboardInterrupt:
        print("\nShutting down Diamond Dash...")


if __name__ == '__main__':
    main()
