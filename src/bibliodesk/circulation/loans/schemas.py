"""Pydantic schemas for loans."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import inspect

if TYPE_CHECKING:
    from .models import Loan


class LoanStatus(str, Enum):
    """Status of a loan, derived from its dates."""

    IN_PROGRESS = "inProgress"
    OVERDUE = "overdue"
    CLOSED = "closed"


SORTABLE_FIELDS = ("issue_date", "due_date", "return_date", "created_at", "updated_at")

LOADABLE_ATTRIBUTES = (
    "book_id",
    "member_id",
    "issue_date",
    "due_date",
    "return_date",
    "import_hash",
    "created_by_id",
    "updated_by_id",
    "created_at",
    "updated_at",
)


class LoanCreate(BaseModel):
    """Schema for creating a loan."""

    book_id: str = Field(..., min_length=1, max_length=36)
    member_id: str = Field(..., min_length=1, max_length=36)
    issue_date: datetime
    import_hash: Optional[str] = Field(None, max_length=255)


class LoanUpdate(BaseModel):
    """Schema for updating a loan.

    Closing a loan is the only supported update, so return_date is
    checked by LoanManager rather than made mandatory here.
    """

    return_date: Optional[datetime] = None


class DateRange(BaseModel):
    """Inclusive range of instants; either end may be open."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None


class LoanFilter(BaseModel):
    """Search criteria for loans."""

    ids: Optional[list[str]] = None
    book: Optional[str] = None
    member: Optional[str] = None
    status: Optional[LoanStatus] = None
    issue_date_range: Optional[DateRange] = None
    due_date_range: Optional[DateRange] = None
    return_date_range: Optional[DateRange] = None


class LoanQuery(BaseModel):
    """Paginated, filtered loan search."""

    filter: LoanFilter = Field(default_factory=LoanFilter)
    requested_attributes: Optional[list[str]] = None
    limit: Optional[int] = Field(None, ge=1)
    offset: Optional[int] = Field(None, ge=0)
    order_by: Optional[str] = None

    @field_validator("order_by")
    @classmethod
    def valid_order_by(cls, v):
        """Validate order_by is <field>_ASC or <field>_DESC."""
        if v is None:
            return v
        name, _, direction = v.rpartition("_")
        if name not in SORTABLE_FIELDS or direction.upper() not in ("ASC", "DESC"):
            raise ValueError(f"Invalid order_by: {v}")
        return f"{name}_{direction.upper()}"

    @field_validator("requested_attributes")
    @classmethod
    def valid_attributes(cls, v):
        """Validate requested attributes are loan columns."""
        if v is None:
            return v
        unknown = [name for name in v if name not in LOADABLE_ATTRIBUTES]
        if unknown:
            raise ValueError(f"Unknown loan attributes: {', '.join(unknown)}")
        return v


@dataclass
class LoanPage:
    """One page of search results and the total match count."""

    count: int
    rows: list["Loan"] = field(default_factory=list)


class AutocompleteOption(BaseModel):
    """Option returned by autocomplete lookups."""

    id: str
    label: str


class LoanResponse(BaseModel):
    """Schema for loan responses.

    Columns left out of a narrowed search stay None.
    """

    id: str
    status: LoanStatus
    book_id: Optional[str] = None
    member_id: Optional[str] = None
    issue_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    import_hash: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Related data
    book_title: Optional[str] = None
    member_name: Optional[str] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_loan(cls, loan: "Loan") -> "LoanResponse":
        """Build a response including book title and member name."""
        unloaded = inspect(loan).unloaded
        response = cls(
            **{
                name: getattr(loan, name)
                for name in cls.model_fields
                if hasattr(type(loan), name) and name not in unloaded
            }
        )
        response.book_title = loan.book.title if loan.book else None
        response.member_name = loan.member.full_name if loan.member else None
        return response
