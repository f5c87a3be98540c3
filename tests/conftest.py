"""Shared pytest fixtures for all tests."""

import pytest

from cli.migrate import apply_pending_migrations
from config import Config
from db.manager import DatabaseManager
from services.base import Services


@pytest.fixture
def test_config(tmp_path):
    """Create a test configuration pointing to a temporary database.

    Args:
        tmp_path: pytest tmp_path fixture for temporary directory.

    Returns:
        Config: Test configuration object.
    """
    return Config(
        base_dir=tmp_path / "moneybook",
        db_data_dir=tmp_path / "moneybook" / "db",
        db_filename="test.db",
        log_level="DEBUG",
        log_dir=tmp_path / "moneybook" / "logs",
        default_organization_id=1,
    )


@pytest.fixture
def db_manager_with_schema(test_config):
    """Create a DatabaseManager with schema already set up.

    The database is a file under tmp_path so that transactions behave
    exactly as they do in production.

    Args:
        test_config: Test configuration fixture.

    Returns:
        DatabaseManager: Database manager with every migration applied.
    """
    db_manager = DatabaseManager(test_config)
    apply_pending_migrations(db_manager)
    return db_manager


@pytest.fixture
def services(test_config, db_manager_with_schema):
    """Create a Services container with test database.

    This fixture provides access to all services with a clean test database.

    Args:
        test_config: Test configuration fixture.
        db_manager_with_schema: Database manager with schema set up.

    Returns:
        Services: Services container for testing.
    """
    return Services(test_config, db_manager=db_manager_with_schema)
