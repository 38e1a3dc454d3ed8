"""Database module for local SQLite storage."""

from .models import AuditLog, Base, Book, Member
from .schemas import AuditAction, BookCreate, BookResponse, MemberCreate
from .sqlite import Database, get_db, reset_db

__all__ = [
    "AuditLog",
    "Base",
    "Book",
    "Member",
    "AuditAction",
    "BookCreate",
    "BookResponse",
    "MemberCreate",
    "Database",
    "get_db",
    "reset_db",
]
