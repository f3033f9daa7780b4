# studymate/services/session_registry.py
import logging
from typing import List, Optional

from .base_service import BaseStoreService
from ..core.config import settings
from ..core.store import DeviceStore
from ..schemas.session import StudySession

logger = logging.getLogger(__name__)


class SessionRegistry(BaseStoreService[StudySession]):
    """Study sessions kept as one flat list in creation order."""

    def __init__(self, store: DeviceStore, key: Optional[str] = None):
        super().__init__(StudySession, store, key or settings.sessions_key)
        self._sessions: Optional[List[StudySession]] = None

    async def load(self) -> List[StudySession]:
        while self._sessions is None:
            generation = self._generation
            raw = await self._read_json()
            if self._sessions is None and generation == self._generation:
                self._sessions = self._parse_many(raw)
        return self._sessions

    async def create_session(self, session: StudySession) -> bool:
        """Append and persist. Returns False if a session with this id already exists."""
        sessions = await self.load()
        if any(s.id == session.id for s in sessions):
            logger.debug(f"Session {session.id} already registered")
            return False
        sessions.append(session.model_copy(deep=True))
        await self._write_json(lambda: self._dump_many(self._sessions or []))
        return True

    async def get_sessions_for_group(self, group_id: str) -> List[StudySession]:
        sessions = await self.load()
        return [s.model_copy(deep=True) for s in sessions if s.group_id == group_id]

    async def get_session(self, session_id: str) -> Optional[StudySession]:
        for session in await self.load():
            if session.id == session_id:
                return session.model_copy(deep=True)
        return None

    def reset(self):
        self._bump_generation()
        self._sessions = None

    async def clear(self):
        self._bump_generation()
        self._sessions = []
        await self._remove()
