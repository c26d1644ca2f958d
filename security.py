"""
Security Utilities & Middleware
Secret key, CORS, response headers, JSON error bodies and request logging.

Every error leaves the API in the same shape as ``BusinessError.to_dict()``:
``{'success': False, 'error': <message>, 'type': <name>}``.
"""
import os
import secrets
from typing import Dict, Any
from flask import Flask, current_app, request, jsonify, session, Response
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, InternalServerError
import logging

from services.exceptions import BusinessError, PersistenceError

logger = logging.getLogger(__name__)

MIN_SECRET_KEY_LENGTH = 32
WEAK_SECRET_MARKERS = ('dev', 'test', 'secret', 'password', '12345', 'bizdesk')
QUIET_PATHS = ('/api/health', '/api/ping', '/api/ready')
PRODUCTION_ENV_VARS = ['SECRET_KEY', 'DATABASE_URL']

# Messages for errors raised by Flask/Werkzeug itself (unknown route, wrong
# method, oversized body); the services raise BusinessError instead.
HTTP_ERROR_MESSAGES = {
    400: 'Requisição inválida',
    401: 'Authentication required',
    403: 'Acesso negado',
    404: 'Recurso não encontrado',
    405: 'Método não permitido para este endereço',
    413: 'Arquivo ou requisição grande demais',
    500: 'Erro interno ao processar a requisição',
}


class SecurityConfig:
    """Secret key checks"""

    @staticmethod
    def is_strong_secret_key(secret_key: str) -> bool:
        if not secret_key or len(secret_key) < MIN_SECRET_KEY_LENGTH:
            return False
        lowered = secret_key.lower()
        return not any(marker in lowered for marker in WEAK_SECRET_MARKERS)

    @staticmethod
    def ensure_secret_key(config: Dict[str, Any]) -> str:
        """
        Return the configured SECRET_KEY, or a random one when it is missing
        or weak. A random key logs every user out on restart, so production
        should always set one.
        """
        secret_key = config.get('SECRET_KEY')
        if SecurityConfig.is_strong_secret_key(secret_key):
            return secret_key

        if os.environ.get('FLASK_ENV') == 'production':
            logger.error("No strong SECRET_KEY in production; sessions will not survive a restart")
        secret_key = secrets.token_hex(32)
        logger.warning(f"Generated new secret key (length: {len(secret_key)})")
        return secret_key


def error_body(message: str, error_type: str) -> Dict[str, Any]:
    return {'success': False, 'error': message, 'type': error_type}


def setup_security_headers(app: Flask):
    """Headers for a JSON API that also serves PDF/CSV downloads"""
    @app.after_request
    def add_security_headers(response: Response) -> Response:
        response.headers['X-Frame-Options'] = 'SAMEORIGIN'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Content-Security-Policy'] = "default-src 'none'; frame-ancestors 'self'"
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        if not app.debug:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        # customer data and budgets must not sit in shared caches
        if request.path.startswith('/api/') and request.path not in QUIET_PATHS:
            response.headers['Cache-Control'] = 'no-store'
        return response

    logger.info("Security headers configured")


def setup_cors(app: Flask, config: Dict[str, Any]):
    """CORS with credentials, since auth rides on the Flask session cookie"""
    cors_origins = config.get('CORS_ORIGINS', ['*'])

    if not app.debug and '*' in cors_origins:
        logger.warning("Using wildcard CORS in production! Set CORS_ORIGINS environment variable.")

    CORS(
        app,
        origins=cors_origins,
        methods=config.get('CORS_METHODS', ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']),
        allow_headers=config.get('CORS_ALLOW_HEADERS', ['Content-Type', 'Authorization']),
        supports_credentials=True,
        max_age=3600
    )
    logger.info(f"CORS configured: origins={cors_origins}")


def setup_error_handlers(app: Flask):
    """
    Register JSON error handlers.

    Service errors keep their own message and status; HTTP errors raised by
    Flask get a short message; unexpected exceptions become a 500 whose body
    only names the exception in debug mode.
    """
    @app.errorhandler(BusinessError)
    def business_error(error: BusinessError):
        if isinstance(error, PersistenceError):
            logger.error(f"Persistence failure on {request.path}: {error.message}")
        else:
            logger.info(f"{type(error).__name__} on {request.method} {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        message = HTTP_ERROR_MESSAGES.get(error.code, error.name)
        return jsonify(error_body(message, error.name.replace(' ', ''))), error.code

    @app.errorhandler(InternalServerError)
    def internal_server_error(error: InternalServerError):
        original = getattr(error, 'original_exception', None) or error
        logger.error(f"Internal server error on {request.path}: {original}", exc_info=original)
        body = error_body(HTTP_ERROR_MESSAGES[500], 'InternalServerError')
        if current_app.debug:
            body['details'] = f"{type(original).__name__}: {original}"
        return jsonify(body), 500

    logger.info("Error handlers registered")


def setup_request_logging(app: Flask):
    """Log each API request with the organization it was made for"""
    @app.after_request
    def log_response(response: Response) -> Response:
        if request.path in QUIET_PATHS:
            return response
        logger.info(
            f"{request.method} {request.path} -> {response.status_code} "
            f"org={session.get('organization_id', '-')} from {request.remote_addr}"
        )
        return response

    logger.info("Request logging configured")


def missing_environment_variables(required_vars) -> list:
    missing = [var for var in required_vars if not os.environ.get(var)]
    for var in missing:
        logger.error(f"Missing environment variable in production: {var}")
    return missing


def setup_security(app: Flask, config: Dict[str, Any]):
    """Setup all security features for the application"""
    app.secret_key = SecurityConfig.ensure_secret_key(config)
    setup_cors(app, config)
    setup_security_headers(app)
    setup_error_handlers(app)
    setup_request_logging(app)

    if not app.debug:
        missing_environment_variables(PRODUCTION_ENV_VARS)

    logger.info("Security configuration complete")
