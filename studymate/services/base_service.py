# studymate/services/base_service.py
"""Base service for components that own one DeviceStore key."""
import asyncio
import json
import logging
from typing import Any, Callable, Iterable, List, Type, TypeVar, Generic

from pydantic import BaseModel, ValidationError

from ..core.exceptions import StoreError
from ..core.store import DeviceStore

logger = logging.getLogger(__name__)

# Define generic type
T = TypeVar('T')

class BaseStoreService(Generic[T]):
    def __init__(self, model: Type[T], store: DeviceStore, key: str):
        self.model = model
        self.store = store
        self.key = key
        self._write_lock = asyncio.Lock()
        # bumped by reset/clear; work started under an older generation is dropped
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def _bump_generation(self):
        self._generation += 1

    async def _read_json(self) -> Any:
        """Read and decode the owned key. Missing, unreadable or corrupted data reads as None."""
        try:
            raw = await self.store.get(self.key)
        except StoreError as e:
            logger.warning(f"Could not read '{self.key}': {e}")
            return None

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Corrupted data under '{self.key}', treating as empty")
            return None

    async def _write_json(self, dump: Callable[[], Any]) -> bool:
        """Serialize the latest in-memory state and write it under the owned key."""
        generation = self._generation
        async with self._write_lock:
            if generation != self._generation:
                logger.debug(f"State under '{self.key}' was cleared, write dropped")
                return False
            # dumped inside the lock so the last write always carries the newest state
            payload = json.dumps(dump())
            try:
                await self.store.set(self.key, payload)
                return True
            except StoreError as e:
                logger.error(f"Could not persist '{self.key}': {e}")
                return False

    async def _remove(self) -> bool:
        async with self._write_lock:
            try:
                await self.store.remove(self.key)
                return True
            except StoreError as e:
                logger.error(f"Could not remove '{self.key}': {e}")
                return False

    def _parse_many(self, items: Any) -> List[T]:
        """Validate a list of records, skipping the malformed ones."""
        if not isinstance(items, list):
            if items is not None:
                logger.warning(f"Expected a list under '{self.key}', got {type(items).__name__}")
            return []

        parsed = []
        for item in items:
            try:
                parsed.append(self._validate_item(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {self.model.__name__} under '{self.key}': {e.error_count()} error(s)")
        return parsed

    def _validate_item(self, item: Any) -> T:
        return self.model.model_validate(item)

    @staticmethod
    def _dump_many(records: Iterable[BaseModel]) -> List[dict]:
        return [r.model_dump(mode="json", by_alias=True) for r in records]
