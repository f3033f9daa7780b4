# studymate/services/credentials.py
import logging
from typing import Optional

from ..core.config import settings
from ..core.exceptions import StoreError
from ..core.store import DeviceStore

logger = logging.getLogger(__name__)


class TokenStore:
    """Bearer token kept under its own DeviceStore key."""

    def __init__(self, store: DeviceStore, key: Optional[str] = None):
        self.store = store
        self.key = key or settings.token_key

    async def get_token(self) -> Optional[str]:
        try:
            token = await self.store.get(self.key)
        except StoreError as e:
            logger.error(f"Error getting token: {e}")
            return None
        return token or None

    async def set_token(self, token: str):
        try:
            await self.store.set(self.key, token)
        except StoreError as e:
            logger.error(f"Error saving token: {e}")

    async def clear_token(self):
        try:
            await self.store.remove(self.key)
        except StoreError as e:
            logger.error(f"Error clearing token: {e}")

    async def is_authenticated(self) -> bool:
        return await self.get_token() is not None
