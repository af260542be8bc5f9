# ===================================
# app/schemas/common.py
# ===================================

from typing import Any, Generic, List, Literal, Optional, TypeVar
from pydantic import BaseModel, Field

T = TypeVar("T")

ResponseStatus = Literal["success", "error", "fail", "partial_success"]


class ApiResponse(BaseModel, Generic[T]):
    """Enveloppe standard des réponses"""
    status: ResponseStatus = "success"
    message: str
    data: Optional[T] = None


class PaginatedResponse(BaseModel, Generic[T]):
    """Enveloppe standard des listes paginées"""
    status: ResponseStatus = "success"
    message: str
    data: Optional[List[T]] = None
    total: Optional[int] = None
    page: Optional[int] = None
    limit: Optional[int] = None
    summary: Optional[Any] = None


class PageQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class MessageResponse(BaseModel):
    status: ResponseStatus = "success"
    message: str
