"""Shared test fixtures."""
import pytest
import pytest_asyncio

from shroud import Shroud, VaultConfig

TEST_MASTER_PASSWORD = "verygoodA+password"

# Cheap scrypt cost so the suite stays fast; the pinned default is
# exercised separately in test_config.py.
FAST_KDF = {"scrypt_n": 2**10, "scrypt_r": 8, "scrypt_p": 1}


@pytest.fixture
def config(tmp_path):
    """A vault configuration rooted in a per-test directory."""
    return VaultConfig(data_dir=tmp_path / "shroud", **FAST_KDF)


@pytest.fixture
def shroud(config):
    """A vault that has not been bootstrapped yet."""
    return Shroud(config=config)


@pytest_asyncio.fixture
async def vault(shroud):
    """A bootstrapped vault."""
    await shroud.bootstrap(TEST_MASTER_PASSWORD)
    return shroud
