import os
from datetime import timedelta
from typing import List
from urllib.parse import quote_plus

DEFAULT_DB_URL = "sqlite:///moodflow.db"


def get_db_url() -> str:
    """DATABASE_URL normalized for SQLAlchemy, or a local SQLite file.

    Heroku-style `postgres://` is rewritten to `postgresql://` and the password
    is percent-encoded so characters like `!` or `@` survive URL parsing.
    """
    db_url = os.environ.get("DATABASE_URL")
    if not db_url:
        return DEFAULT_DB_URL

    if db_url.startswith("postgres://"):
        db_url = "postgresql://" + db_url[len("postgres://"):]
    if not db_url.startswith("postgresql://"):
        return db_url

    credentials, sep, location = db_url[len("postgresql://"):].rpartition("@")
    if not sep or ":" not in credentials:
        return db_url
    user, password = credentials.split(":", 1)
    return f"postgresql://{user}:{quote_plus(password)}@{location}"


def _env_flag(name: str, default: str = 'False') -> bool:
    return os.environ.get(name, default).lower() == 'true'


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('JWT_SECRET_KEY', 'dev-secret-key-change-in-production')

    # Local auth mode issues its own access tokens
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', 'dev-secret-key-change-in-production')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)

    SQLALCHEMY_DATABASE_URI = get_db_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SUPABASE_URL = os.environ.get('SUPABASE_URL')
    SUPABASE_KEY = os.environ.get('SUPABASE_KEY')
    SUPABASE_USE_FOR_AUTH = _env_flag('SUPABASE_USE_FOR_AUTH')

    GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY')
    GEMINI_MODEL_NAME = os.environ.get('GEMINI_MODEL_NAME', 'gemini-2.5-flash')
    ANALYSIS_TIMEOUT = int(os.environ.get('ANALYSIS_TIMEOUT', 60))

    FREE_TIER_ENTRY_LIMIT = int(os.environ.get('FREE_TIER_ENTRY_LIMIT', 5))
    PREMIUM_PRICE_KES = int(os.environ.get('PREMIUM_PRICE_KES', 500))
    PAYMENT_SIMULATED_DELAY = float(os.environ.get('PAYMENT_SIMULATED_DELAY', 2.5))

    REPORT_DEFAULT_MONTHS = int(os.environ.get('REPORT_DEFAULT_MONTHS', 3))

    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000').split(',')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    """In-memory database, local auth, no external calls."""
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = 'testing-secret-key-with-enough-length-for-hs256'
    SUPABASE_USE_FOR_AUTH = False
    GEMINI_API_KEY = None
    PAYMENT_SIMULATED_DELAY = 0


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True

    CORS_ORIGINS: List[str] = [
        origin.strip() for origin in os.environ.get('CORS_ORIGINS', 'https://moodflow.netlify.app').split(',')
        if origin.strip()
    ]


config_by_name = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(env: str = None) -> Config:
    """Config class for `env`, defaulting to FLASK_ENV."""
    env = env or os.environ.get('FLASK_ENV', 'default')
    return config_by_name.get(env, config_by_name['default'])
