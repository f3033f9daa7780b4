# studymate/services/remote_api.py
"""Network boundary to the StudyMate backend."""
import logging
from typing import Any, Optional, Protocol, Tuple
from urllib.parse import quote

import httpx

from .credentials import TokenStore
from ..core.config import settings
from ..core.exceptions import NotAuthenticatedError, RemoteAPIError
from ..schemas.api import ApiResult

logger = logging.getLogger(__name__)


class RemoteChatAPI(Protocol):
    """Every call resolves to an ApiResult; none raises for network or HTTP failures."""

    async def send_message(
        self, group_id: str, content: str, kind: str = "text", client_id: Optional[str] = None
    ) -> ApiResult: ...

    async def list_messages(self, group_id: str) -> ApiResult: ...

    async def toggle_reaction(self, group_id: str, message_id: str, emoji: str) -> ApiResult: ...

    async def get_notifications(self) -> ApiResult: ...

    async def mark_notification_read(self, notification_id: str) -> ApiResult: ...

    async def accept_friend_request(self, request_id: str) -> ApiResult: ...

    async def reject_friend_request(self, request_id: str) -> ApiResult: ...

    async def approve_join_request(self, group_id: str, user_id: str) -> ApiResult: ...

    async def reject_join_request(self, group_id: str, user_id: str) -> ApiResult: ...


def _seg(value: Any) -> str:
    return quote(str(value), safe="")


class HttpChatAPI:
    def __init__(
        self,
        tokens: TokenStore,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.tokens = tokens
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout or settings.request_timeout,
        )

    async def close(self):
        await self._client.aclose()

    async def _auth_headers(self) -> dict:
        token = await self.tokens.get_token()
        if not token:
            raise NotAuthenticatedError()
        return {"Authorization": f"Bearer {token}"}

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Tuple[Any, int]:
        headers = await self._auth_headers()

        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise RemoteAPIError(f"Request to {path} failed: {e}") from e

        try:
            payload = response.json() if response.content else None
        except ValueError:
            raise RemoteAPIError(f"Invalid JSON from {path}", response.status_code)

        if response.is_error:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise RemoteAPIError(error or f"HTTP error! status: {response.status_code}", response.status_code)

        if isinstance(payload, dict) and payload.get("success") is False:
            raise RemoteAPIError(payload.get("error") or "Request was not successful", response.status_code)

        return payload, response.status_code

    async def _call(self, operation: str, method: str, path: str, json: Optional[dict] = None) -> ApiResult:
        try:
            payload, status_code = await self._request(method, path, json)
        except NotAuthenticatedError:
            logger.warning(f"Cannot {operation}: no auth token found")
            return ApiResult.not_authenticated()
        except RemoteAPIError as e:
            logger.warning(f"Error trying to {operation}: {e.message}")
            return ApiResult.failure(e.message, e.status_code)
        return ApiResult.ok(payload, status_code)

    # Chat

    async def send_message(
        self, group_id: str, content: str, kind: str = "text", client_id: Optional[str] = None
    ) -> ApiResult:
        body = {"content": content, "message_type": kind}
        if client_id:
            body["client_id"] = client_id
        return await self._call("send message", "POST", f"/api/chat/{_seg(group_id)}/message", body)

    async def list_messages(self, group_id: str) -> ApiResult:
        result = await self._call("list messages", "GET", f"/api/chat/{_seg(group_id)}/messages")
        if result.success:
            payload = result.data
            if isinstance(payload, dict):
                payload = payload.get("messages")
            result.data = payload if isinstance(payload, list) else []
        return result

    async def toggle_reaction(self, group_id: str, message_id: str, emoji: str) -> ApiResult:
        return await self._call(
            "toggle reaction", "POST",
            f"/api/chat/{_seg(group_id)}/messages/{_seg(message_id)}/reactions",
            {"emoji": emoji},
        )

    # Notifications

    async def get_notifications(self) -> ApiResult:
        result = await self._call("get notifications", "GET", "/api/notifications")
        if result.success:
            payload = result.data
            if isinstance(payload, list):
                result.data = {"notifications": payload}
            elif not isinstance(payload, dict):
                result.data = {"notifications": []}
        return result

    async def mark_notification_read(self, notification_id: str) -> ApiResult:
        return await self._call(
            "mark notification read", "POST", f"/api/notifications/{_seg(notification_id)}/read"
        )

    # Requests

    async def accept_friend_request(self, request_id: str) -> ApiResult:
        return await self._call(
            "accept friend request", "POST", f"/api/friends/requests/{_seg(request_id)}/accept"
        )

    async def reject_friend_request(self, request_id: str) -> ApiResult:
        return await self._call(
            "reject friend request", "POST", f"/api/friends/requests/{_seg(request_id)}/reject"
        )

    async def approve_join_request(self, group_id: str, user_id: str) -> ApiResult:
        return await self._call(
            "approve join request", "POST",
            f"/api/groups/{_seg(group_id)}/requests/{_seg(user_id)}/approve",
        )

    async def reject_join_request(self, group_id: str, user_id: str) -> ApiResult:
        return await self._call(
            "reject join request", "POST",
            f"/api/groups/{_seg(group_id)}/requests/{_seg(user_id)}/reject",
        )
