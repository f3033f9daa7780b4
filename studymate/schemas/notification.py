"""Notification records as a tagged union keyed by ``type``."""
import enum
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    AliasChoices, Discriminator, Field, Tag, TypeAdapter, computed_field, field_validator,
)

from .chat import CamelModel, ensure_aware


class NotificationType(str, enum.Enum):
    FRIEND_REQUEST = "friend_request"
    FRIEND_REQUEST_ACCEPTED = "friend_request_accepted"
    JOIN_REQUEST = "join_request"
    REQUEST_APPROVED = "request_approved"
    DIRECT_MESSAGE = "direct_message"


def _stringify(v):
    return str(v) if isinstance(v, int) else v


class NotificationData(CamelModel):
    @field_validator("*", mode="before")
    @classmethod
    def _stringify_ids(cls, v):
        return _stringify(v)


class FriendRequestData(NotificationData):
    request_id: Optional[str] = Field(None, validation_alias=AliasChoices("requestId", "request_id", "id"))
    sender_id: Optional[str] = None
    sender_name: Optional[str] = None


class FriendAcceptedData(NotificationData):
    user_id: Optional[str] = Field(None, validation_alias=AliasChoices("userId", "user_id", "friendId"))
    user_name: Optional[str] = Field(None, validation_alias=AliasChoices("userName", "user_name", "friendName"))


class JoinRequestData(NotificationData):
    group_id: str
    requester_id: str
    requester_name: Optional[str] = None
    group_name: Optional[str] = None


class RequestApprovedData(NotificationData):
    group_id: str
    group_name: Optional[str] = None


class DirectMessageData(NotificationData):
    sender_id: str
    sender_name: Optional[str] = None


class NotificationBase(CamelModel):
    id: str
    read: bool = Field(False, validation_alias=AliasChoices("read", "isRead", "is_read"))
    created_at: Optional[datetime] = None
    title: Optional[str] = None
    message: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, v):
        return _stringify(v)

    @field_validator("created_at")
    @classmethod
    def _aware_created_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v) if v is not None else v


class FriendRequestNotification(NotificationBase):
    type: Literal["friend_request"] = "friend_request"
    data: FriendRequestData = Field(default_factory=FriendRequestData)

    @property
    def request_id(self) -> str:
        return self.data.request_id or self.id


class FriendAcceptedNotification(NotificationBase):
    type: Literal["friend_request_accepted"] = "friend_request_accepted"
    data: FriendAcceptedData = Field(default_factory=FriendAcceptedData)


class JoinRequestNotification(NotificationBase):
    type: Literal["join_request"] = "join_request"
    data: JoinRequestData


class RequestApprovedNotification(NotificationBase):
    type: Literal["request_approved"] = "request_approved"
    data: RequestApprovedData


class DirectMessageNotification(NotificationBase):
    type: Literal["direct_message"] = "direct_message"
    data: DirectMessageData


class GenericNotification(NotificationBase):
    """Any notification type this client has no dedicated handling for."""
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _none_data(cls, v):
        return v or {}


_KNOWN_TYPES = {t.value for t in NotificationType}


def _notification_tag(value: Any) -> str:
    if isinstance(value, dict):
        kind = value.get("type")
    else:
        kind = getattr(value, "type", None)
    return kind if kind in _KNOWN_TYPES else "other"


Notification = Annotated[
    Union[
        Annotated[FriendRequestNotification, Tag("friend_request")],
        Annotated[FriendAcceptedNotification, Tag("friend_request_accepted")],
        Annotated[JoinRequestNotification, Tag("join_request")],
        Annotated[RequestApprovedNotification, Tag("request_approved")],
        Annotated[DirectMessageNotification, Tag("direct_message")],
        Annotated[GenericNotification, Tag("other")],
    ],
    Discriminator(_notification_tag),
]

notification_adapter = TypeAdapter(Notification)


def parse_notification(raw: Any) -> NotificationBase:
    return notification_adapter.validate_python(raw)


class NotificationSnapshot(CamelModel):
    notifications: List[Notification] = Field(default_factory=list)
    stale: bool = False
    error: Optional[str] = None

    @computed_field
    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)
