"""
EpochLedger - UTXO Epoch Settlement
=====================================
Validazione e applicazione di batch di transazioni su un pool UTXO.

Version: 0.3.0
License: MIT
"""

__version__ = "0.3.0"
__license__ = "MIT"

from epoch_ledger.config import LedgerSettings, get_settings
from epoch_ledger.domain.models import Transaction, TxInput, TxOutput, UTXOKey
from epoch_ledger.domain.utxo import UTXOPool
from epoch_ledger.domain.validation import is_valid_transaction
from epoch_ledger.domain.epoch import EpochProcessor, EpochSummary

__all__ = [
    "__version__",
    "LedgerSettings",
    "get_settings",
    "Transaction",
    "TxInput",
    "TxOutput",
    "UTXOKey",
    "UTXOPool",
    "is_valid_transaction",
    "EpochProcessor",
    "EpochSummary",
]
