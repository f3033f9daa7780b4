from typing import Any, Optional

from pydantic import BaseModel


class ApiResult(BaseModel):
    """Outcome of a RemoteChatAPI call: success flag plus payload or error string."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    unauthenticated: bool = False

    @classmethod
    def ok(cls, data: Any = None, status_code: Optional[int] = 200) -> "ApiResult":
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def failure(
        cls, error: str, status_code: Optional[int] = None, unauthenticated: bool = False
    ) -> "ApiResult":
        return cls(success=False, error=error, status_code=status_code, unauthenticated=unauthenticated)

    @classmethod
    def not_authenticated(cls) -> "ApiResult":
        return cls.failure("Not authenticated", status_code=401, unauthenticated=True)
