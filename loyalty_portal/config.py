"""
Configuration management for the loyalty portal.
"""
import logging
import os
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEV_SECRET_KEY = 'dev-secret-key-change-in-production'
MIN_SECRET_KEY_LENGTH = 32


def _supabase_url() -> str:
    return os.getenv('SUPABASE_URL', '').rstrip('/')


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', DEV_SECRET_KEY)

    # Supabase collaborators (auth, data store, redeem function)
    SUPABASE_URL = _supabase_url()
    SUPABASE_ANON_KEY = os.getenv('SUPABASE_ANON_KEY', '')
    SUPABASE_TIMEOUT = int(os.getenv('SUPABASE_TIMEOUT', '30'))
    REDEEM_FUNCTION_URL = os.getenv(
        'REDEEM_FUNCTION_URL',
        f'{_supabase_url()}/functions/v1/app/redeem' if _supabase_url() else ''
    )

    # Dashboard
    HISTORY_LIMIT = 50
    DISPLAY_TIMEZONE = os.getenv('DISPLAY_TIMEZONE') or None

    # Per-process latest-response-wins store, least recently used users dropped first
    RESOURCE_STATE_MAX_USERS = int(os.getenv('RESOURCE_STATE_MAX_USERS', '1000'))

    # Toast channel
    TOAST_DURATION_SECONDS = float(os.getenv('TOAST_DURATION_SECONDS', '4'))
    TOAST_QUEUE_SIZE = int(os.getenv('TOAST_QUEUE_SIZE', '3'))

    # Front-end origins allowed to call the API with cookies
    CORS_ORIGINS = [
        o.strip() for o in os.getenv(
            'CORS_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173'
        ).split(',') if o.strip()
    ]

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False
    SESSION_COOKIE_SECURE = True

    # Must come from the environment; checked at app startup
    _secret_key = os.getenv('SECRET_KEY', '')
    SECRET_KEY = _secret_key

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Raises:
            RuntimeError: If SECRET_KEY is missing or shorter than MIN_SECRET_KEY_LENGTH
        """
        key = cls._secret_key
        if not key or key == DEV_SECRET_KEY:
            raise RuntimeError('SECRET_KEY must be set for production')
        if len(key) < MIN_SECRET_KEY_LENGTH:
            raise RuntimeError(
                f'SECRET_KEY must be at least {MIN_SECRET_KEY_LENGTH} characters'
            )
        return key


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    SUPABASE_URL = 'https://project.supabase.test'
    SUPABASE_ANON_KEY = 'anon-test-key'
    REDEEM_FUNCTION_URL = 'https://project.supabase.test/functions/v1/app/redeem'
    DISPLAY_TIMEZONE = None
    TOAST_DURATION_SECONDS = 4.0
    TOAST_QUEUE_SIZE = 3


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(app_config, config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Missing Supabase settings only log a warning: the app still boots and
    collaborator calls fail later. In production SECRET_KEY must be sound.

    Raises:
        RuntimeError: If SECRET_KEY validation fails in production
    """
    missing = [k for k in ('SUPABASE_URL', 'SUPABASE_ANON_KEY') if not app_config.get(k)]
    if missing:
        logger.warning(
            'Missing Supabase environment variables (%s). Requests to Supabase will fail.',
            ', '.join(missing)
        )

    if config_name == 'production':
        ProductionConfig.validate_secret_key()
