"""Pydantic schemas for shared records."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AuditAction(str, Enum):
    """Kind of write recorded in the audit log."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class BookCreate(BaseModel):
    """Schema for registering a book with its inventory."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=500)
    isbn: Optional[str] = Field(None, max_length=13)
    number_of_copies: int = Field(1, ge=0)


class BookResponse(BaseModel):
    """Schema for book responses."""

    id: str
    title: str
    author: str
    isbn: Optional[str]
    number_of_copies: int
    stock: int

    model_config = {"from_attributes": True}


class MemberCreate(BaseModel):
    """Schema for creating a member."""

    id: Optional[str] = Field(None, min_length=1, max_length=36)
    full_name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=200)
