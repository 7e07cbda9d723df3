# config/settings.py
"""
Environment-based configuration classes.

Values are read from the process environment (a local ``.env`` file is
loaded first when present). ``create_app`` picks one of the classes below
from ``FLASK_ENV``.
"""

import os
import secrets

from dotenv import load_dotenv

from config.security import SecurityConfig

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_list(name: str, default: str) -> list:
    return [item.strip() for item in os.environ.get(name, default).split(',') if item.strip()]


class Config(SecurityConfig):
    """Base configuration shared by every environment"""

    VERSION = os.environ.get('APP_VERSION', '1.0.0')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE')
    LOG_TO_SYSLOG = _env_flag('LOG_TO_SYSLOG', False)
    SLOW_REQUEST_THRESHOLD = 1000  # ms

    # Database
    DATABASE_URL = os.environ.get('DATABASE_URL', 'sqlite:///cbm_site.db')
    DB_POOL_SIZE = int(os.environ.get('DB_POOL_SIZE', 20))
    DB_MAX_OVERFLOW = int(os.environ.get('DB_MAX_OVERFLOW', 10))

    # Redis (optional cache, OTP store, rate limit storage)
    REDIS_URL = os.environ.get('REDIS_URL')
    OTP_BACKEND = os.environ.get('OTP_BACKEND', 'memory')
    CACHE_DEFAULT_TTL = 3600

    # Celery
    CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL') or os.environ.get('REDIS_URL') or 'redis://localhost:6379/2'
    CELERY_TASK_ALWAYS_EAGER = _env_flag('CELERY_TASK_ALWAYS_EAGER', False)

    # CORS
    CORS_ORIGINS = _env_list('CORS_ORIGINS', '*')

    # Admin / email
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL')
    SMTP_HOST = os.environ.get('SMTP_HOST', 'smtp.gmail.com')
    SMTP_PORT = int(os.environ.get('SMTP_PORT', 465))
    SMTP_USER = os.environ.get('SMTP_USER')
    SMTP_PASS = os.environ.get('SMTP_PASS')
    SMTP_TIMEOUT = 30
    MAIL_DOMAIN = os.environ.get('MAIL_DOMAIN', 'cbm360tiv.com')

    # Uploads / cloud storage
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(os.getcwd(), 'uploads'))
    CLOUDINARY_CLOUD_NAME = os.environ.get('CLOUDINARY_CLOUD_NAME')
    CLOUDINARY_API_KEY = os.environ.get('CLOUDINARY_API_KEY')
    CLOUDINARY_API_SECRET = os.environ.get('CLOUDINARY_API_SECRET')
    CLOUDINARY_ROOT_FOLDER = os.environ.get('CLOUDINARY_ROOT_FOLDER', 'cbm')

    # Machine translation
    TRANSLATION_ENABLED = _env_flag('TRANSLATION_ENABLED', True)
    TRANSLATE_API_KEY = os.environ.get('TRANSLATE_API_KEY')
    TRANSLATE_API_URL = os.environ.get(
        'TRANSLATE_API_URL', 'https://translation.googleapis.com/language/translate/v2'
    )
    TRANSLATE_TIMEOUT = 15

    # Geocoding
    GEOCODING_ENABLED = _env_flag('GEOCODING_ENABLED', True)
    GEOCODER_URL = os.environ.get('GEOCODER_URL', 'https://nominatim.openstreetmap.org/search')
    GEOCODER_USER_AGENT = os.environ.get('GEOCODER_USER_AGENT', 'CBM-Backend/1.0 (contact@cbm360tiv.com)')
    GEOCODER_DELAY_SECONDS = float(os.environ.get('GEOCODER_DELAY_SECONDS', 1.1))
    GEOCODER_TIMEOUT = 10


class DevelopmentConfig(Config):
    DEBUG = True
    # per-process key; tokens do not survive a restart
    SECRET_KEY = os.environ.get('SECRET_KEY') or secrets.token_urlsafe(32)
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')
    CELERY_TASK_ALWAYS_EAGER = _env_flag('CELERY_TASK_ALWAYS_EAGER', True)


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    DATABASE_URL = 'sqlite://'
    REDIS_URL = None
    OTP_BACKEND = 'memory'
    RATELIMIT_ENABLED = False
    CELERY_BROKER_URL = 'memory://'
    CELERY_TASK_ALWAYS_EAGER = True
    ADMIN_EMAIL = 'admin@example.com'
    SMTP_USER = None
    SMTP_PASS = None
    CLOUDINARY_CLOUD_NAME = None
    CLOUDINARY_API_KEY = None
    CLOUDINARY_API_SECRET = None
    TRANSLATE_API_KEY = None
    GEOCODING_ENABLED = False
    GEOCODER_DELAY_SECONDS = 0
    LOG_FILE = None
    LOG_LEVEL = 'WARNING'


class ProductionConfig(Config):
    DEBUG = False
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL') or 'memory://'


CONFIG_BY_NAME = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}
