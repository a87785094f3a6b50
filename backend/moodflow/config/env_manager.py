"""
Loads layered .env files with python-dotenv before the app is configured.
"""
import os
import logging
from typing import List

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def candidate_files(env: str) -> List[str]:
    """Env files for `env`, highest priority first. .env.shared is always loaded last."""
    return [f".env.{env}.local", f".env.{env}", ".env.local", ".env", ".env.shared"]


def mask_database_url(db_url: str) -> str:
    """Drop credentials from a database URL for logging."""
    if '@' not in db_url:
        return db_url
    scheme = db_url.split('://', 1)[0]
    return f"{scheme}://***@{db_url.split('@', 1)[1]}"


def load_environment():
    """
    Load the environment files for FLASK_ENV (default "development").

    Files are read highest priority first with override=False, so a value
    already set (by the real environment or a more specific file) wins.

    Returns:
        os.environ after loading
    """
    env = os.environ.get('FLASK_ENV', 'development')

    loaded = []
    for path in candidate_files(env):
        if os.path.isfile(path):
            load_dotenv(path, override=False)
            loaded.append(path)

    if loaded:
        logger.info(f"[{env}] loaded environment from: {', '.join(loaded)}")
    else:
        logger.warning(f"[{env}] no .env files found, using process environment only")

    db_url = os.environ.get('DATABASE_URL')
    logger.info(f"Database: {mask_database_url(db_url) if db_url else 'sqlite (default)'}")

    if os.environ.get('SUPABASE_USE_FOR_AUTH', 'False').lower() == 'true':
        logger.info(f"Supabase Auth enabled: {os.environ.get('SUPABASE_URL')}")
    if not os.environ.get('GEMINI_API_KEY'):
        logger.warning("GEMINI_API_KEY not set. Journal analysis will return placeholder results.")

    return os.environ
