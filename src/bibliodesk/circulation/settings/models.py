"""Database models for tenant settings."""

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..dates import utcnow
from ..db.models import Base
from ..db.types import UTCDateTime


class Settings(Base):
    """Model for per-tenant settings, one row per tenant."""

    __tablename__ = "settings"

    tenant_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    loan_period_in_days: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_by_id: Mapped[Optional[str]] = mapped_column(String(36))
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("loan_period_in_days > 0", name="ck_settings_loan_period_positive"),
    )
