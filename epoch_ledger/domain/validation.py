"""
EpochLedger - Transaction Validation
======================================
Predicato di validità di una transazione rispetto a uno snapshot del pool.

Validation Rules (in quest'ordine, stop al primo fallimento):
1. Existence: ogni input reclama un UTXO presente nel pool
2. Authenticity: ogni input è firmato dall'owner dell'output reclamato,
   sul payload posizionale di quell'input
3. No internal double-spend: UTXO reclamati a due a due distinti
4. Non-negative outputs: ogni output ha value >= 0
5. Conservation: somma input >= somma output (differenza = fee implicita)

Il predicato è puro: non muta né pool né transazione.

API:
- is_valid_transaction(): contratto booleano
- check_transaction(): primo RejectReason o None
- validate_transaction(): solleva il TransactionError corrispondente
"""

from decimal import Decimal
from enum import Enum
from typing import Optional, Set

from epoch_ledger.constants import sum_values, subtract_values
from epoch_ledger.domain.crypto_core import SignatureVerifier
from epoch_ledger.domain.models import Transaction, UTXOKey
from epoch_ledger.domain.utxo import UTXOPool
from epoch_ledger.errors import (
    TransactionError,
    MissingInputError,
    InvalidSignatureError,
    DoubleSpendError,
    NegativeOutputError,
    InsufficientFundsError,
)
from epoch_ledger.logging_setup import get_logger


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("validation")


# ============================================================================
# REJECT REASONS
# ============================================================================

class RejectReason(str, Enum):
    """Codice interno del primo controllo fallito"""
    UTXO_NOT_FOUND = "UTXO_NOT_FOUND"
    SIGNATURE_INVALID = "SIGNATURE_INVALID"
    DOUBLE_CLAIM = "DOUBLE_CLAIM"
    NEGATIVE_OUTPUT = "NEGATIVE_OUTPUT"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"


# ============================================================================
# CHECKS
# ============================================================================

def _check_existence(tx: Transaction, pool: UTXOPool) -> None:
    for idx, inp in enumerate(tx.inputs):
        utxo_key = inp.utxo_key
        if not pool.contains(utxo_key):
            raise MissingInputError(
                f"Input {idx} references non-existent UTXO: {utxo_key}",
                code=RejectReason.UTXO_NOT_FOUND.value,
                details={"input_index": idx, "utxo_key": str(utxo_key)}
            )


def _check_signatures(
    tx: Transaction,
    pool: UTXOPool,
    verifier: SignatureVerifier
) -> None:
    for idx, inp in enumerate(tx.inputs):
        claimed = pool.get_utxo(inp.utxo_key)

        if inp.signature is None or claimed is None:
            raise InvalidSignatureError(
                f"Input {idx} not signed",
                code=RejectReason.SIGNATURE_INVALID.value,
                details={"input_index": idx}
            )

        if not verifier(claimed.owner, tx.unsigned_payload(idx), inp.signature):
            raise InvalidSignatureError(
                f"Invalid signature for input {idx}",
                code=RejectReason.SIGNATURE_INVALID.value,
                details={"input_index": idx}
            )


def _check_no_double_claim(tx: Transaction) -> None:
    seen: Set[UTXOKey] = set()

    for idx, inp in enumerate(tx.inputs):
        utxo_key = inp.utxo_key
        if utxo_key in seen:
            raise DoubleSpendError(
                f"Input {idx} claims {utxo_key} more than once",
                code=RejectReason.DOUBLE_CLAIM.value,
                details={"input_index": idx, "utxo_key": str(utxo_key)}
            )
        seen.add(utxo_key)


def _check_output_values(tx: Transaction) -> None:
    for idx, output in enumerate(tx.outputs):
        if output.value < 0:
            raise NegativeOutputError(
                f"Negative output value at index {idx}: {output.value}",
                code=RejectReason.NEGATIVE_OUTPUT.value,
                details={"index": idx, "value": str(output.value)}
            )


def _check_conservation(tx: Transaction, pool: UTXOPool) -> None:
    total_input = claimed_input_value(tx, pool)
    total_output = tx.total_output_value()

    if total_input < total_output:
        raise InsufficientFundsError(
            f"Insufficient funds: input={total_input}, output={total_output}",
            code=RejectReason.INSUFFICIENT_FUNDS.value,
            details={
                "input_value": str(total_input),
                "output_value": str(total_output),
                "deficit": str(subtract_values(total_output, total_input))
            }
        )


# ============================================================================
# PUBLIC API
# ============================================================================

def claimed_input_value(tx: Transaction, pool: UTXOPool) -> Decimal:
    """
    Somma dei valori reclamati dagli input.

    Input che non risolvono nel pool contano zero.
    """
    resolved = (pool.get_utxo(inp.utxo_key) for inp in tx.inputs)
    return sum_values(output.value for output in resolved if output is not None)


def validate_transaction(
    tx: Transaction,
    pool: UTXOPool,
    verifier: SignatureVerifier
) -> None:
    """
    Valida la transazione contro lo snapshot pool.

    Raises:
        MissingInputError: UTXO reclamato assente
        InvalidSignatureError: Firma mancante o non autentica
        DoubleSpendError: Stesso UTXO reclamato due volte
        NegativeOutputError: Output negativo
        InsufficientFundsError: Output > input
    """
    _check_existence(tx, pool)
    _check_signatures(tx, pool, verifier)
    _check_no_double_claim(tx)
    _check_output_values(tx)
    _check_conservation(tx, pool)


def check_transaction(
    tx: Transaction,
    pool: UTXOPool,
    verifier: SignatureVerifier
) -> Optional[RejectReason]:
    """
    Returns:
        RejectReason del primo controllo fallito, None se valida
    """
    try:
        validate_transaction(tx, pool, verifier)
    except TransactionError as e:
        logger.debug(
            "Transaction rejected",
            extra_data={"reason": e.code, **e.details}
        )
        return RejectReason(e.code)

    return None


def is_valid_transaction(
    tx: Transaction,
    pool: UTXOPool,
    verifier: SignatureVerifier
) -> bool:
    """
    True se tx supera tutti e cinque i controlli rispetto a pool.

    Examples:
        >>> is_valid_transaction(tx, pool, make_verifier())
        True
    """
    return check_transaction(tx, pool, verifier) is None


def transaction_fee(tx: Transaction, pool: UTXOPool) -> Decimal:
    """Fee implicita: input reclamati − output dichiarati"""
    return subtract_values(claimed_input_value(tx, pool), tx.total_output_value())


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "RejectReason",
    "claimed_input_value",
    "validate_transaction",
    "check_transaction",
    "is_valid_transaction",
    "transaction_fee",
]
