"""
Environment Variable Validation
Validates all required environment variables on application startup
"""
import os
import sys
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

ENV = os.environ.get('ENV', 'production')
REQUIRED_VARS = {
    'production': [
        'SECRET_KEY',
        'ENTITY_API_BASE_URL',
    ]
}

OPTIONAL_VARS = [
    'ENTITY_API_TIMEOUT',
    'DASHBOARD_FETCH_LIMIT',
    'ADMIN_FETCH_LIMIT',
    'DASHBOARD_SAMPLE_FALLBACK',
    'PLATFORM_COMMISSION_RATE',
    'DATABASE_URL',
    'DB_POOL_RECYCLE',
    'ALLOWED_ORIGINS',
    'SESSION_COOKIE_SAMESITE',
    'SESSION_TIMEOUT',
    'RATELIMIT_ENABLED',
    'RATELIMIT_STORAGE_URI',
    'RATELIMIT_DEFAULT',
    'LOGIN_RATE_LIMIT',
    'LOG_DIR',
    'SENTRY_DSN',
]


def validate_environment():
    """
    Validate all required environment variables

    Returns:
        Tuple of (is_valid, missing_vars, warnings)
    """
    missing_vars = []
    warnings = []

    required = REQUIRED_VARS.get(ENV, [])

    for var in required:
        if not os.environ.get(var):
            missing_vars.append(var)

    base_url = os.environ.get('ENTITY_API_BASE_URL', '')
    if base_url and not base_url.startswith(('http://', 'https://')):
        missing_vars.append('ENTITY_API_BASE_URL (must be an http(s) URL)')

    if not os.environ.get('ALLOWED_ORIGINS'):
        warnings.append("ALLOWED_ORIGINS not set - CORS may not work correctly")

    if not os.environ.get('DATABASE_URL'):
        warnings.append("DATABASE_URL not set - status history goes to a local SQLite file")

    if os.environ.get('DASHBOARD_SAMPLE_FALLBACK', 'true').lower() in ('1', 'true', 'yes', 'on'):
        warnings.append("DASHBOARD_SAMPLE_FALLBACK enabled - empty dashboards show sample rows")

    is_valid = len(missing_vars) == 0

    return is_valid, missing_vars, warnings


def print_validation_results():
    """Print validation results to console"""
    is_valid, missing_vars, warnings = validate_environment()

    print(f"\n{'='*60}")
    print(f"Environment Variable Validation - {ENV.upper()}")
    print(f"{'='*60}\n")

    if is_valid:
        print("✓ All required environment variables are set\n")
    else:
        print("✗ Missing required environment variables:\n")
        for var in missing_vars:
            print(f"  - {var}")
        print("\nPlease set these variables in your .env file or environment\n")

    if warnings:
        print("⚠ Warnings:\n")
        for warning in warnings:
            print(f"  - {warning}")
        print()

    print(f"{'='*60}\n")

    return is_valid


if __name__ == '__main__':
    is_valid = print_validation_results()
    if not is_valid:
        sys.exit(1)
