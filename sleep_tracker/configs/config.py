# config.py
import os

from sleep_tracker.models.base import get_database_uri


def _csv_env(name, default):
    raw = os.environ.get(name)
    if not raw:
        return default
    return [item.strip() for item in raw.split(',') if item.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'default-secret-key'
    SQLALCHEMY_DATABASE_URI = get_database_uri()

    # Gemini advice; the key is only required by /api/sleep/advice
    GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY')
    GEMINI_MODEL = os.environ.get('GEMINI_MODEL', 'gemini-2.5-flash')
    GEMINI_TEMPERATURE = float(os.environ.get('GEMINI_TEMPERATURE', '0.7'))
    GEMINI_TIMEOUT_SECONDS = float(os.environ.get('GEMINI_TIMEOUT_SECONDS', '60'))

    # Wall-clock timezone for naive input datetimes and statistics
    TIMEZONE = os.environ.get('TIMEZONE', 'UTC')

    CORS_ORIGINS = _csv_env('CORS_ORIGINS', ['http://localhost:3000'])
    CORS_METHODS = ['GET', 'POST', 'PUT', 'DELETE']

    LOG_CONSOLE_LEVEL = os.environ.get('LOG_CONSOLE_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    GEMINI_API_KEY = None
    TIMEZONE = 'UTC'
    LOG_CONSOLE_LEVEL = 'WARNING'


class ProductionConfig(Config):
    DEBUG = False
