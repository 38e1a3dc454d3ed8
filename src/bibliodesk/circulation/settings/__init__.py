"""Tenant settings module.

Provides functionality for:
- Per-tenant loan period
- Lazy creation of default settings
"""

from .manager import SettingsManager
from .models import Settings
from .schemas import SettingsUpdate, TenantSettings

__all__ = [
    "SettingsManager",
    "Settings",
    "SettingsUpdate",
    "TenantSettings",
]
