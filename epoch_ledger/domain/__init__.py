"""
EpochLedger - Domain Package
==============================
Core domain logic del ledger.
"""

# Models
from epoch_ledger.domain.models import (
    UTXOKey,
    TxInput,
    TxOutput,
    Transaction,
    build_transaction,
)

# Pool
from epoch_ledger.domain.utxo import UTXOPool

# Crypto
from epoch_ledger.domain.crypto_core import (
    SignatureVerifier,
    get_crypto_provider,
    make_verifier,
)
from epoch_ledger.domain.keypairs import KeyPair, generate_keypair

# Validation
from epoch_ledger.domain.validation import (
    RejectReason,
    validate_transaction,
    check_transaction,
    is_valid_transaction,
    transaction_fee,
)

# Epoch
from epoch_ledger.domain.ordering import (
    OrderingPolicy,
    presentation_order,
    order_by_hash,
    order_by_fee,
    get_ordering_policy,
)
from epoch_ledger.domain.epoch import EpochProcessor, EpochSummary


__all__ = [
    # Models
    "UTXOKey",
    "TxInput",
    "TxOutput",
    "Transaction",
    "build_transaction",

    # Pool
    "UTXOPool",

    # Crypto
    "SignatureVerifier",
    "get_crypto_provider",
    "make_verifier",
    "KeyPair",
    "generate_keypair",

    # Validation
    "RejectReason",
    "validate_transaction",
    "check_transaction",
    "is_valid_transaction",
    "transaction_fee",

    # Epoch
    "OrderingPolicy",
    "presentation_order",
    "order_by_hash",
    "order_by_fee",
    "get_ordering_policy",
    "EpochProcessor",
    "EpochSummary",
]
