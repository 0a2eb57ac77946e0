import os
import logging

from dotenv import load_dotenv

# ../.env
DOTENV_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), '../.env')

load_dotenv(DOTENV_PATH)

logger = logging.getLogger(__name__)


class Config:
    # Basic Config
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')

    # Database
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Database Connection Pool Configuration
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 10,                    # Number of connections to maintain in pool
        'max_overflow': 20,                 # Additional connections beyond pool_size
        'pool_timeout': 30,                 # Seconds to wait for connection from pool
        'pool_recycle': 300,                # Recycle connections after 5 minutes
        'pool_pre_ping': True,              # Verify connections before use

        'connect_args': {
            'connect_timeout': 10,
            'application_name': 'quotehub',
        },

        'echo': os.getenv('DATABASE_DEBUG', 'false').lower() == 'true'
    }

    # Prefer POSTGRES_URL, then SQLALCHEMY_DATABASE_URI
    database_url = os.getenv('POSTGRES_URL') or os.getenv('SQLALCHEMY_DATABASE_URI')

    if database_url:
        # SQLAlchemy only recognises the postgresql:// scheme
        if database_url.startswith('postgres://'):
            database_url = database_url.replace('postgres://', 'postgresql://', 1)

        SQLALCHEMY_DATABASE_URI = database_url

        if database_url.startswith('sqlite'):
            SQLALCHEMY_ENGINE_OPTIONS = {
                'pool_pre_ping': False,
                'connect_args': {'check_same_thread': False},
            }
    else:
        # Fallback for dev
        db_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'data')
        os.makedirs(db_dir, exist_ok=True)
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{os.path.join(db_dir, "quotehub.db")}'

        # Override connection pool settings for SQLite (different requirements)
        SQLALCHEMY_ENGINE_OPTIONS = {
            'pool_size': 5,                     # Smaller pool for SQLite
            'max_overflow': 10,                 # Limited overflow for SQLite
            'pool_timeout': 20,                 # Shorter timeout for SQLite
            'pool_recycle': 1800,               # 30 minutes for SQLite
            'pool_pre_ping': False,             # SQLite doesn't need pre-ping

            # SQLite-specific settings
            'connect_args': {
                'timeout': 20,                  # SQLite timeout
                'check_same_thread': False,     # Allow SQLite multi-threading
            },

            'echo': os.getenv('DATABASE_DEBUG', 'false').lower() == 'true'
        }

    # Provider API keys
    ALPHA_VANTAGE_API_KEY = os.getenv('ALPHA_VANTAGE_API_KEY', '')
    FINNHUB_API_KEY = os.getenv('FINNHUB_API_KEY', '')
    TWELVEDATA_API_KEY = os.getenv('TWELVEDATA_API_KEY', '')
    MASSIVE_API_KEY = os.getenv('MASSIVE_API_KEY', '')

    # Resilience
    CIRCUIT_BREAKER_FAILURE_THRESHOLD = int(os.getenv('CIRCUIT_BREAKER_FAILURE_THRESHOLD', '3'))
    CIRCUIT_BREAKER_OPEN_SECONDS = int(os.getenv('CIRCUIT_BREAKER_OPEN_SECONDS', '60'))
    PROVIDER_TIMEOUT_SECONDS = float(os.getenv('PROVIDER_TIMEOUT_SECONDS', '10'))
    SYNTHETIC_DATA_POINTS = int(os.getenv('SYNTHETIC_DATA_POINTS', '4000'))

    # Cache
    MEMORY_CACHE_TTL_SECONDS = int(os.getenv('MEMORY_CACHE_TTL_SECONDS', '300'))
    DURABLE_CACHE_TTL_SECONDS = int(os.getenv('DURABLE_CACHE_TTL_SECONDS', '3600'))
    CACHE_SWEEP_INTERVAL_MINUTES = int(os.getenv('CACHE_SWEEP_INTERVAL_MINUTES', '15'))

    # Scheduler
    SCHEDULER_ENABLED = os.getenv('SCHEDULER_ENABLED', 'true').lower() == 'true'

    # Admin routes are disabled unless a token is set
    ADMIN_API_TOKEN = os.getenv('ADMIN_API_TOKEN', '')
