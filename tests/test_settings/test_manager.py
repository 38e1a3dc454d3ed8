"""Tests for SettingsManager."""

import pytest

from bibliodesk.circulation.auth import CurrentUser, Roles
from bibliodesk.circulation.settings import Settings, SettingsManager, SettingsUpdate


@pytest.fixture
def manager(db):
    """Create a SettingsManager with test database."""
    return SettingsManager(db, default_loan_period_days=14)


@pytest.fixture
def user():
    """A librarian of the default tenant."""
    return CurrentUser(id="librarian-1", roles=[Roles.LIBRARIAN])


class TestFindOrCreateDefault:
    """Tests for lazy default creation."""

    def test_creates_defaults(self, db, manager, user):
        """Test settings are created on first access."""
        settings = manager.find_or_create_default(user)

        assert settings.tenant_id == "default"
        assert settings.loan_period_in_days == 14
        with db.get_session() as session:
            assert session.get(Settings, "default") is not None

    def test_returns_existing(self, manager, user):
        """Test a second access returns the stored row."""
        manager.update(user, SettingsUpdate(loan_period_in_days=21))

        assert manager.find_or_create_default(user).loan_period_in_days == 21

    def test_tenants_are_separate(self, manager, user):
        """Test each tenant has its own settings."""
        other = CurrentUser(id="x", roles=[Roles.LIBRARIAN], tenant_id="branch-2")
        manager.update(other, SettingsUpdate(loan_period_in_days=7))

        assert manager.find_or_create_default(user).loan_period_in_days == 14
        assert manager.find_or_create_default(other).loan_period_in_days == 7

    def test_default_from_config(self, db, user, monkeypatch):
        """Test the default period comes from the environment."""
        monkeypatch.setenv("BIBLIODESK_LOAN_PERIOD_DAYS", "10")

        settings = SettingsManager(db).find_or_create_default(user)

        assert settings.loan_period_in_days == 10


class TestUpdate:
    """Tests for changing settings."""

    def test_update(self, manager, user):
        """Test updating the loan period."""
        settings = manager.update(user, SettingsUpdate(loan_period_in_days=30))

        assert settings.loan_period_in_days == 30

    @pytest.mark.parametrize("days", [0, -1])
    def test_update_rejects_non_positive(self, days):
        """Test the loan period must be positive."""
        with pytest.raises(ValueError):
            SettingsUpdate(loan_period_in_days=days)
