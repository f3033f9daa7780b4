import bisect
import enum
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Naive timestamps are taken as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_store(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class MessageKind(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    ANNOUNCEMENT = "announcement"


class Reaction(CamelModel):
    user_id: str
    user_name: str = ""
    emoji: str

    @property
    def key(self):
        return (self.emoji, self.user_id)


class ChatMessage(CamelModel):
    id: str
    group_id: str
    sender_id: str
    sender_name: str = ""
    body: str = Field("", validation_alias=AliasChoices("body", "message", "content"))
    kind: MessageKind = Field(
        MessageKind.TEXT,
        validation_alias=AliasChoices("kind", "type", "messageType", "message_type"),
    )
    created_at: datetime = Field(
        validation_alias=AliasChoices("createdAt", "created_at", "timestamp"),
    )
    media_ref: Optional[str] = Field(
        None, validation_alias=AliasChoices("mediaRef", "media_ref", "imageUri")
    )
    file_name: Optional[str] = None
    reactions: List[Reaction] = Field(default_factory=list)

    @field_validator("id", "group_id", "sender_id", mode="before")
    @classmethod
    def _stringify_ids(cls, v):
        # backend ids may arrive as integers
        return str(v) if isinstance(v, int) else v

    @field_validator("created_at")
    @classmethod
    def _aware_created_at(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @field_validator("reactions", mode="before")
    @classmethod
    def _none_reactions(cls, v):
        return v or []

    @field_validator("reactions")
    @classmethod
    def _canonical_reactions(cls, v: List[Reaction]) -> List[Reaction]:
        # one reaction per (user, emoji), kept in (emoji, user) order
        unique = {}
        for reaction in v:
            unique.setdefault(reaction.key, reaction)
        return [unique[k] for k in sorted(unique)]

    @property
    def sort_key(self):
        return (self.created_at, self.id)

    def has_reaction(self, user_id: str, emoji: str) -> bool:
        return any(r.user_id == user_id and r.emoji == emoji for r in self.reactions)

    def toggle_reaction(self, user_id: str, user_name: str, emoji: str) -> bool:
        """Remove the (user, emoji) reaction if present, otherwise add it. Returns presence."""
        if self.has_reaction(user_id, emoji):
            self.reactions = [
                r for r in self.reactions
                if not (r.user_id == user_id and r.emoji == emoji)
            ]
            return False
        reaction = Reaction(user_id=user_id, user_name=user_name, emoji=emoji)
        keys = [r.key for r in self.reactions]
        self.reactions.insert(bisect.bisect_left(keys, reaction.key), reaction)
        return True


class GroupChat(CamelModel):
    group_id: str
    messages: List[ChatMessage] = Field(default_factory=list)
    last_read_at: datetime = Field(
        EPOCH, validation_alias=AliasChoices("lastReadAt", "last_read_at", "lastRead")
    )

    @field_validator("last_read_at", mode="before")
    @classmethod
    def _default_last_read(cls, v):
        return EPOCH if v is None else v

    @field_validator("last_read_at")
    @classmethod
    def _aware_last_read(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    def unread_count(self, current_user_id: Optional[str]) -> int:
        return sum(
            1 for m in self.messages
            if m.created_at > self.last_read_at and m.sender_id != current_user_id
        )

    def find_message(self, message_id: str) -> Optional[ChatMessage]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    @property
    def latest_created_at(self) -> Optional[datetime]:
        return self.messages[-1].created_at if self.messages else None
