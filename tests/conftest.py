"""
Pytest configuration and shared fixtures for batch audit tests.

Chrome and Lighthouse are replaced by in-process fakes; storage runs against tmp_path.
"""

import pytest

from batch_audit.audit.executor import AuditExecutor
from batch_audit.audit.runner import BatchRunner
from batch_audit.services.tasks import TaskRegistry
from batch_audit.settings import Settings
from batch_audit.storage.local import LocalStorage
from tests.fakes import FIXED_DAY, FIXED_NOW, FakeChrome, FakeLighthouse


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that spawn real subprocesses"
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        STORAGE_BACKEND="local",
        LOCAL_STORAGE_ROOT=str(tmp_path / "store"),
        AUDIT_SITES_DIR=str(tmp_path / "audit-sites"),
        AUDIT_TIMEOUT=10,
    )


@pytest.fixture
def storage(settings):
    return LocalStorage(settings.LOCAL_STORAGE_ROOT, settings.REPORTS_PREFIX)


@pytest.fixture
def fake_chrome():
    return FakeChrome()


@pytest.fixture
def fake_lighthouse():
    return FakeLighthouse()


@pytest.fixture
def executor(storage, settings, fake_chrome, fake_lighthouse):
    return AuditExecutor(
        storage,
        settings,
        launcher=fake_chrome,
        tool=fake_lighthouse,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def registry():
    return TaskRegistry()


@pytest.fixture
def runner(executor, registry):
    return BatchRunner(executor, registry, today=lambda: FIXED_DAY)
