"""Schemas for tenant settings."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TenantSettings(BaseModel):
    """Settings for one tenant."""

    tenant_id: str
    loan_period_in_days: int = Field(..., gt=0, le=3650)
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SettingsUpdate(BaseModel):
    """Schema for updating tenant settings."""

    loan_period_in_days: int = Field(..., gt=0, le=3650)
