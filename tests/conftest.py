"""
EpochLedger - Pytest Configuration
====================================
Fixtures e configurazione per testing.
"""

import pytest
from pathlib import Path
import tempfile
import shutil

# Internal imports
from epoch_ledger.config import override_settings
from epoch_ledger.domain.crypto_core import compute_sha256, make_verifier
from epoch_ledger.domain.keypairs import generate_keypair
from epoch_ledger.domain.models import TxOutput, UTXOKey, build_transaction
from epoch_ledger.domain.utxo import UTXOPool


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================

@pytest.fixture
def test_config():
    """Test configuration"""
    return override_settings(
        log_level="DEBUG",
        enable_console_log=False,
        epoch_ordering="presentation",
    )


@pytest.fixture
def temp_data_dir():
    """Temporary data directory"""
    temp_dir = Path(tempfile.mkdtemp())
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


# ============================================================================
# KEY FIXTURES
# ============================================================================

@pytest.fixture(scope="session")
def alice():
    """Keypair owner del genesis (keyX)"""
    return generate_keypair()


@pytest.fixture(scope="session")
def bob():
    """Keypair destinatario (keyY)"""
    return generate_keypair()


@pytest.fixture(scope="session")
def carol():
    """Terzo keypair"""
    return generate_keypair()


@pytest.fixture
def verifier():
    """Verificatore ECDSA di default"""
    return make_verifier()


# ============================================================================
# POOL FIXTURES
# ============================================================================

@pytest.fixture
def genesis_key():
    """(hashA, 0)"""
    return UTXOKey(compute_sha256(b"hashA"), 0)


@pytest.fixture
def genesis_pool(genesis_key, alice):
    """Pool = {(hashA, 0): Output(10, alice)}"""
    pool = UTXOPool()
    pool.add_utxo(genesis_key, TxOutput(10, alice.public_key))
    return pool


@pytest.fixture
def two_utxo_pool(genesis_key, alice):
    """Pool con due UTXO di alice: (hashA, 0)=10 e (hashA, 1)=5"""
    pool = UTXOPool()
    pool.add_utxo(genesis_key, TxOutput(10, alice.public_key))
    pool.add_utxo(UTXOKey(genesis_key.tx_hash, 1), TxOutput(5, alice.public_key))
    return pool


# ============================================================================
# HELPER FIXTURES
# ============================================================================

@pytest.fixture
def make_tx(alice):
    """
    Factory di transazioni firmate.

    make_tx([key, ...], [(value, owner), ...], signer=alice)
    """
    def _make(spends, payments, signer=alice):
        return build_transaction(spends, payments, keypair=signer)

    return _make
