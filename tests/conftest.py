#!/usr/bin/env python3
"""
Shared test fixtures and configuration.

This file contains pytest fixtures that can be used across all test files.
Organized for incremental testing from small to large blocks.
"""

import pytest
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import Mock

# Add project root to path for proper imports
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from integration_hub.db.test_db import TestDatabase, TestDataFactory, SAMPLE_PAYLOADS
from integration_hub.enums import AssignmentStrategy, OwnerType


# ============================================================================
# Level 1: Pure Fixtures (normalizers, trigger evaluation)
# ============================================================================

@pytest.fixture
def head_office_owner():
    """Integration stand-in for pure mapping functions, owned by the head office."""
    return SimpleNamespace(id="int-ho", owner_type=OwnerType.HEAD_OFFICE.value, owner_id=None)


@pytest.fixture
def franchisee_owner():
    """Integration stand-in for pure mapping functions, owned by one franchisee."""
    return SimpleNamespace(id="int-fr", owner_type=OwnerType.FRANCHISEE.value, owner_id="franchisee-1")


@pytest.fixture
def sample_payloads():
    return SAMPLE_PAYLOADS


# ============================================================================
# Level 2: Test Database Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def test_db():
    """Test database with proper setup and teardown."""
    db = TestDatabase()
    db.setup()
    yield db
    db.teardown()


@pytest.fixture
def test_data_factory():
    """Test data factory for creating test data."""
    return TestDataFactory()


@pytest.fixture
def test_session(test_db):
    """Get a test database session."""
    with test_db.get_session() as session:
        yield session


@pytest.fixture
def head_office_integration(test_session, test_data_factory):
    return test_data_factory.create_test_integration(test_session, channel="telegram",
                                                     owner_type=OwnerType.HEAD_OFFICE.value)


@pytest.fixture
def franchisee_integration(test_session, test_data_factory):
    """Telegram integration of franchisee-1 assigning leads to its first admin."""
    return test_data_factory.create_test_integration(
        test_session,
        channel="telegram",
        owner_type=OwnerType.FRANCHISEE.value,
        owner_id="franchisee-1",
        assignment_strategy=AssignmentStrategy.FIRST_ADMIN.value,
    )


# ============================================================================
# Level 3: Pipeline Fixtures
# ============================================================================

@pytest.fixture
def hub(test_session):
    from integration_hub.hub.integration_hub import IntegrationHub
    return IntegrationHub(test_session, base_url="https://crm.example.com")


@pytest.fixture
def pipeline(test_session):
    from integration_hub.hub.lead_pipeline import LeadPipeline
    return LeadPipeline(test_session)


# ============================================================================
# Level 4: HTTP Fixtures
# ============================================================================

@pytest.fixture
def mock_queue():
    """Stand-in for the Redis stream; records published ids."""
    queue = Mock()
    queue.publish_message_id.return_value = "1-0"
    return queue


@pytest.fixture
def client(test_db, mock_queue):
    from fastapi.testclient import TestClient
    from integration_hub.webhook_server import app, get_db, get_queue

    def override_get_db():
        yield test_db.session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_queue] = lambda: mock_queue
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ============================================================================
# Utility Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def project_root_path():
    """Return the project root path."""
    return project_root
