"""
Shared Supabase client, used only for Supabase Auth.
Created lazily from SUPABASE_URL / SUPABASE_KEY so the app starts without them.
"""
import os
import logging
from typing import Optional

from supabase import create_client, Client

logger = logging.getLogger(__name__)


class SupabaseManager:
    """Process-wide holder for one Supabase client."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(SupabaseManager, cls).__new__(cls)
            cls._instance._client = None
        return cls._instance

    def _connect(self) -> Optional[Client]:
        url = os.getenv('SUPABASE_URL')
        key = os.getenv('SUPABASE_KEY')

        if not url or not key:
            logger.warning("SUPABASE_URL or SUPABASE_KEY missing; Supabase Auth unavailable")
            return None

        try:
            client = create_client(url, key)
        except Exception as e:
            logger.error(f"Could not create Supabase client for {url[:24]}...: {str(e)}")
            return None

        logger.info("Supabase client ready")
        return client

    @property
    def client(self) -> Optional[Client]:
        """The client, or None when Supabase is not configured. Retries creation on each access until it succeeds."""
        if self._client is None:
            self._client = self._connect()
        return self._client

    def is_available(self) -> bool:
        return self.client is not None


supabase = SupabaseManager()
