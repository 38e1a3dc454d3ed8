"""Manager for per-tenant settings."""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from ..auth import CurrentUser
from ..config import get_config
from ..db.sqlite import Database, get_db
from .models import Settings
from .schemas import SettingsUpdate, TenantSettings

logger = logging.getLogger(__name__)


class SettingsManager:
    """Reads and writes tenant settings, creating defaults on first access."""

    def __init__(self, db: Optional[Database] = None, default_loan_period_days: Optional[int] = None):
        """Initialize settings manager.

        Args:
            db: Database instance
            default_loan_period_days: Loan period for newly created settings;
                defaults to the configured BIBLIODESK_LOAN_PERIOD_DAYS
        """
        self.db = db or get_db()
        self.default_loan_period_days = (
            default_loan_period_days or get_config().loan_period_days
        )

    def find_or_create_default(self, current_user: CurrentUser) -> TenantSettings:
        """Get the tenant's settings, creating them with defaults if absent.

        Runs in its own short session. Concurrent first access is resolved
        by the primary key: the losing insert re-reads the winner's row.
        """
        tenant_id = current_user.tenant_id
        try:
            with self.db.get_session() as session:
                settings = session.get(Settings, tenant_id)
                if settings is None:
                    settings = Settings(
                        tenant_id=tenant_id,
                        loan_period_in_days=self.default_loan_period_days,
                        updated_by_id=current_user.id,
                    )
                    session.add(settings)
                    session.flush()
                    logger.info(
                        "Created default settings for tenant %s (%s days)",
                        tenant_id,
                        settings.loan_period_in_days,
                    )
                return TenantSettings.model_validate(settings)
        except IntegrityError:
            with self.db.get_session() as session:
                return TenantSettings.model_validate(session.get(Settings, tenant_id))

    def update(self, current_user: CurrentUser, data: SettingsUpdate) -> TenantSettings:
        """Update the tenant's settings.

        Args:
            current_user: Acting user; selects the tenant
            data: New values

        Returns:
            Updated settings
        """
        self.find_or_create_default(current_user)

        with self.db.get_session() as session:
            settings = session.get(Settings, current_user.tenant_id)
            settings.loan_period_in_days = data.loan_period_in_days
            settings.updated_by_id = current_user.id
            session.flush()
            session.refresh(settings)
            return TenantSettings.model_validate(settings)
