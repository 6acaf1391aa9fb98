"""
Global pytest configuration and fixtures.
"""
import datetime as dt
import os
from decimal import Decimal
from typing import Any, Dict

import pytest

from revenue_engine.config import reload_config, reset_logging
from revenue_engine.models.billing_config import AttributeOverride, BillingAttribute
from revenue_engine.models.catalog import CatalogProject, ProjectCatalog
from revenue_engine.models.timesheet import TimesheetEntry
from revenue_engine.resolvers.effective_config_resolver import (
    BillingConfigStore,
    EffectiveConfigResolver,
)


@pytest.fixture(scope="session")
def test_env_vars() -> Dict[str, str]:
    """Test environment variables for configuration."""
    return {
        "DEFAULT_RATE": "45.00",
        "DEFAULT_ROUNDING_INCREMENT": "15",
        "ENVIRONMENT": "testing",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "MAX_RETRIES": "1",
        "RETRY_DELAY": "0",
        "MAX_WORKERS": "1",
    }


@pytest.fixture
def mock_env(test_env_vars, monkeypatch, tmp_path):
    """Mock environment variables for testing."""
    for key, value in test_env_vars.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("LEDGER_FILE_PATH", str(tmp_path / "ledger.json"))

    # Clear the global config to force reload with test values
    import revenue_engine.config.settings

    revenue_engine.config.settings._config = None

    yield test_env_vars

    revenue_engine.config.settings._config = None


@pytest.fixture
def test_config(mock_env):
    """Test configuration instance."""
    return reload_config()


@pytest.fixture
def entry_factory():
    """Build TimesheetEntry objects with sensible defaults."""

    def make_entry(**overrides: Any) -> TimesheetEntry:
        data: Dict[str, Any] = {
            "work_date": dt.date(2026, 1, 15),
            "project_id": "P-1",
            "client_id": "C-1",
            "user_id": "U-1",
            "user_name": "Alice",
            "task_name": "Development",
            "total_minutes": 60,
        }
        data.update(overrides)
        return TimesheetEntry(**data)

    return make_entry


@pytest.fixture
def sample_catalog() -> ProjectCatalog:
    """Two companies, one duplicate project id."""
    return ProjectCatalog(
        [
            CatalogProject(
                project_id="P-1",
                project_name="Website",
                client_id="C-1",
                client_name="Acme Corp",
            ),
            CatalogProject(
                project_id="P-1-legacy",
                project_name="Website (legacy)",
                client_id="C-1",
                canonical_project_id="P-1",
            ),
            CatalogProject(
                project_id="P-2",
                project_name="Mobile App",
                client_id="C-2",
                client_name="Beta Industries",
            ),
        ]
    )


@pytest.fixture
def sample_store() -> BillingConfigStore:
    """P-1 with limits and carryover, P-2 with a rate only."""

    def override(project_id, attribute, value, month="2026-01"):
        return AttributeOverride(
            project_id=project_id,
            attribute=attribute,
            effective_month=month,
            value=value,
        )

    return BillingConfigStore(
        [
            override("P-1", BillingAttribute.RATE, "100"),
            override("P-1", BillingAttribute.MINIMUM_HOURS, "10"),
            override("P-1", BillingAttribute.MAXIMUM_HOURS, "40"),
            override("P-1", BillingAttribute.CARRYOVER, "yes"),
            override("P-2", BillingAttribute.RATE, "80"),
        ]
    )


@pytest.fixture
def sample_resolver(sample_store) -> EffectiveConfigResolver:
    return EffectiveConfigResolver(sample_store, default_rate=Decimal("45.00"))


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Drop handlers installed by CLI runs so later tests start clean."""
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def cleanup_test_files():
    """Clean up any test files created during testing."""
    yield

    test_files = ["coverage.xml", ".coverage"]
    for file in test_files:
        if os.path.exists(file):
            os.remove(file)


# Pytest configuration for different test types
def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "api: mark test as requiring API access")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on location."""
    for item in items:
        if "tests/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        if "google" in item.name.lower() or "sheet" in item.name.lower():
            item.add_marker(pytest.mark.api)
