"""Global pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from skyplanner_backup.backup.crypto import BackupCipher
from skyplanner_backup.config import PipelineConfig
from tests.fakes import TEST_PASSPHRASE, FakeObjectStore, FakeSourceStore


@pytest.fixture(scope="session")
def cipher():
    """Cipher with a derived test key (scrypt runs once per session)."""
    return BackupCipher(TEST_PASSPHRASE)


@pytest.fixture
def pipeline_config():
    """Pipeline config with no retry delay and a small page size."""
    return PipelineConfig(page_size=2, max_retries=3, retry_delay=0.0, max_backups=2, restore_batch_size=2)


@pytest.fixture
def source_store():
    return FakeSourceStore()


@pytest.fixture
def object_store():
    return FakeObjectStore()
