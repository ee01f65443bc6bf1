"""Uniform response envelope returned by every remote call."""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

NETWORK_ERROR = "Network error occurred"


class PaginationMeta(BaseModel):
    """Pagination details attached to list responses."""

    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_items: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)

    model_config = {"frozen": True}


class ApiResponse(BaseModel, Generic[T]):
    """Envelope of the form ``{success, message?, error?, data?, pagination?}``.

    Failures of any kind (transport or application) are carried as
    ``success=False`` with a human readable ``error``.
    """

    success: bool = Field(..., description="Whether the call succeeded")
    message: Optional[str] = Field(default=None, description="Status message")
    error: Optional[str] = Field(default=None, description="Error message on failure")
    data: Optional[T] = Field(default=None, description="Payload")
    pagination: Optional[PaginationMeta] = Field(default=None, description="Page info")

    model_config = {"frozen": True}

    @classmethod
    def ok(cls, data: Optional[T] = None, message: Optional[str] = None, **kwargs) -> "ApiResponse[T]":
        return cls(success=True, data=data, message=message, **kwargs)

    @classmethod
    def fail(cls, error: str) -> "ApiResponse[T]":
        return cls(success=False, error=error)
