"""
Supabase client service
"""
from supabase import create_client, Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class SupabaseService:
    """Owns the Supabase client"""

    def __init__(self, url: str, key: str, client: Optional[Client] = None):
        """Initialize the Supabase client"""
        self.client: Client = client or create_client(url, key)
        logger.info("Supabase client initialized")

    def get_secret(self, secret_name: str) -> Optional[str]:
        """
        Read a secret from the app_settings table.

        Used as a fallback when the value is not in the environment. A
        failed lookup is logged and treated as missing.
        """
        try:
            result = self.client.table("app_settings").select("value").eq("key", secret_name).execute()
        except Exception as e:
            logger.error(f"Failed to read secret {secret_name}: {e}")
            return None

        if result.data:
            return result.data[0]["value"]
        return None

    def get_client(self) -> Client:
        """Return the Supabase client"""
        return self.client
