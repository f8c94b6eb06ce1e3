import os
from datetime import timedelta
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    # Environment Configuration
    ENV = os.environ.get('ENV', 'production')  # Default to production
    DEBUG = False  # Always False in production
    TESTING = False

    # Secret key for session management and security
    # Required in production - no default fallback
    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        if ENV == 'production':
            raise ValueError("SECRET_KEY environment variable is required")
        SECRET_KEY = 'dev-secret-key'

    # Entity API - the external REST backend that owns every business entity
    ENTITY_API_BASE_URL = os.environ.get('ENTITY_API_BASE_URL', '').strip().rstrip('/')
    if not ENTITY_API_BASE_URL:
        if ENV == 'production':
            raise ValueError("ENTITY_API_BASE_URL environment variable is required")
        ENTITY_API_BASE_URL = 'http://localhost:5000/api'

    if not ENTITY_API_BASE_URL.startswith(('http://', 'https://')):
        raise ValueError("ENTITY_API_BASE_URL must be an absolute http(s) URL")

    # Single timeout for every entity call (seconds); there is no retry policy
    ENTITY_API_TIMEOUT = int(os.environ.get('ENTITY_API_TIMEOUT', 10))

    # Dashboard aggregation
    DASHBOARD_FETCH_LIMIT = int(os.environ.get('DASHBOARD_FETCH_LIMIT', 50))
    ADMIN_FETCH_LIMIT = int(os.environ.get('ADMIN_FETCH_LIMIT', 10))
    # Substitute sample rows when a user owns no data (flagged in every response)
    DASHBOARD_SAMPLE_FALLBACK = _env_bool('DASHBOARD_SAMPLE_FALLBACK', True)

    # Platform fee applied on service completion and parts checkout
    PLATFORM_COMMISSION_RATE = float(os.environ.get('PLATFORM_COMMISSION_RATE', 0.10))
    if not 0 <= PLATFORM_COMMISSION_RATE <= 1:
        raise ValueError("PLATFORM_COMMISSION_RATE must be between 0 and 1")

    # Local database - holds only the status history and activity log
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///mobility_audit.db')

    # Disable modification tracking to save resources
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,  # Verify connections before using
        'pool_recycle': int(os.environ.get('DB_POOL_RECYCLE', 280)),
    }

    # Session / token cookie configuration
    TOKEN_COOKIE_NAME = 'access_token'
    SESSION_COOKIE_SECURE = ENV == 'production'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.environ.get('SESSION_COOKIE_SAMESITE', 'Lax')
    SESSION_TIMEOUT = int(os.environ.get('SESSION_TIMEOUT', 7 * 24 * 3600))  # 7 days
    PERMANENT_SESSION_LIFETIME = timedelta(seconds=SESSION_TIMEOUT)
    SESSION_COOKIE_MAX_AGE = SESSION_TIMEOUT

    # CORS Configuration
    ALLOWED_ORIGINS = [
        origin.strip() for origin in os.environ.get(
            'ALLOWED_ORIGINS',
            'http://localhost:3000,http://127.0.0.1:3000'
        ).split(',') if origin.strip()
    ]

    # Rate limiting (Flask-Limiter)
    RATELIMIT_ENABLED = _env_bool('RATELIMIT_ENABLED', True)
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_DEFAULT = os.environ.get('RATELIMIT_DEFAULT', '200 per day;50 per hour')
    LOGIN_RATE_LIMIT = os.environ.get('LOGIN_RATE_LIMIT', '10 per minute')

    # Request body limit
    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1MB, JSON payloads only

    # Production Security Settings
    if ENV == 'production':
        # Force HTTPS
        PREFERRED_URL_SCHEME = 'https'


class TestingConfig(Config):
    ENV = 'testing'
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    ENTITY_API_BASE_URL = 'http://entity.test/api'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SESSION_COOKIE_SECURE = False
    RATELIMIT_ENABLED = False
    DASHBOARD_SAMPLE_FALLBACK = True
