"""Common Pydantic schemas used across the API."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard API response envelope."""

    status: str = "success"
    data: T


class ErrorDetail(BaseModel):
    """Error detail carried in HTTPException responses."""

    code: str
    message: str
