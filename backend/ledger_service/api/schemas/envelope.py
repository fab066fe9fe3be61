from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform envelope around every response body."""
    success: bool
    data: T | None = None
    message: str = ""


def ok(data: T, message: str) -> ApiResponse[T]:
    return ApiResponse(success=True, data=data, message=message)


def failure(message: str) -> dict:
    return ApiResponse[None](success=False, data=None, message=message).model_dump()
