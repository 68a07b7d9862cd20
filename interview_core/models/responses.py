"""
Uniform response envelope for every API route.
"""
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiError(BaseModel):
    code: str
    message: str
    detail: Optional[Any] = None


class ApiResponse(BaseModel, Generic[T]):
    """``{ok, data, error, message}`` envelope."""
    ok: bool = True
    data: Optional[T] = None
    error: Optional[ApiError] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, data: Any = None, message: Optional[str] = None) -> "ApiResponse":
        return cls(ok=True, data=data, message=message)

    @classmethod
    def failure(
        cls,
        code: str,
        message: str,
        detail: Optional[Any] = None,
    ) -> "ApiResponse":
        return cls(
            ok=False,
            error=ApiError(code=code, message=message, detail=detail),
            message=message,
        )
