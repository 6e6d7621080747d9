"""Configuration module for the attendance engine."""
import os
from datetime import timedelta

DATABASE_TIMEOUT = int(os.environ.get('DATABASE_TIMEOUT', 15))  # seconds

def database_engine_options(database_url, timeout=DATABASE_TIMEOUT):
    """Engine options bounding connection and statement time for the driver in use."""
    options = {'pool_pre_ping': True, 'pool_timeout': timeout}
    url = database_url or ''
    if url.startswith('postgres'):
        options['connect_args'] = {
            'connect_timeout': timeout,
            'options': f'-c statement_timeout={timeout * 1000}'
        }
    elif url.startswith('mysql'):
        options['connect_args'] = {
            'connect_timeout': timeout,
            'read_timeout': timeout,
            'write_timeout': timeout
        }
    elif url.startswith('sqlite'):
        # busy timeout for locked database files
        options['connect_args'] = {'timeout': timeout}
    return options

class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # JWT Configuration (tokens are issued by the external auth service)
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_ALGORITHM = 'HS256'

    # CORS
    CORS_ORIGINS = ["http://localhost:*", "http://127.0.0.1:*"]

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "200 per day, 50 per hour"
    SUBMISSION_RATE_LIMIT = "10 per minute"

    # Identity verification
    FACE_COMPARE_URL = os.environ.get('FACE_COMPARE_URL')
    FACE_COMPARE_TIMEOUT = 10  # seconds
    FACE_SIMILARITY_THRESHOLD = 90.0
    MAX_FACE_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB

    # Offline sync
    MAX_SYNC_BATCH = 200

    # Pagination
    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100

    # Logging
    LOG_LEVEL = 'INFO'
    LOG_FILE = 'logs/app.log'

class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or \
        'sqlite:///attendance_dev.db'
    LOG_LEVEL = 'DEBUG'

class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.environ.get('SECRET_KEY')
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')
    SQLALCHEMY_ENGINE_OPTIONS = database_engine_options(SQLALCHEMY_DATABASE_URI)

    # Redis (required in production)
    REDIS_URL = os.environ.get('REDIS_URL')
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL')

    # Enhanced security
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Stricter limits
    RATELIMIT_DEFAULT = "100 per day, 20 per hour"
    FACE_COMPARE_TIMEOUT = 5
    LOG_FILE = os.environ.get('LOG_FILE') or '/app/logs/app.log'

class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    RATELIMIT_ENABLED = False
    FACE_COMPARE_URL = 'http://face-compare.test/compare'
    FACE_COMPARE_TIMEOUT = 1
    MAX_FACE_IMAGE_BYTES = 1024  # 1KB keeps oversize fixtures small
    MAX_SYNC_BATCH = 10
    LOG_LEVEL = 'WARNING'

# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}

def get_config(config_name=None):
    """Get configuration by name."""
    return config.get(config_name or os.environ.get('FLASK_ENV', 'default'), config['default'])
