"""
EpochLedger - Core Constants
==============================
Costanti del ledger e helper per i valori decimali.
"""

from decimal import (
    Context,
    Decimal,
    DivisionByZero,
    Inexact,
    InvalidOperation,
    Overflow,
    localcontext,
)
from enum import Enum
from typing import Final, Iterable, Union

# ============================================================================
# IDENTIFICAZIONE PROGETTO
# ============================================================================

PROJECT_NAME: Final[str] = "EpochLedger"
SOFTWARE_VERSION: Final[str] = "0.3.0"

# ============================================================================
# CRITTOGRAFIA
# ============================================================================

# Algoritmo firma di default
SIGNATURE_TYPE: Final[str] = "ecdsa"
SUPPORTED_SIGNATURE_TYPES: Final[tuple] = ("ecdsa",)

# Chiave del pool di genesis: (sha256(GENESIS_SEED), 0)
GENESIS_SEED: Final[bytes] = b"genesis"

# ============================================================================
# ORDINAMENTO EPOCH
# ============================================================================

class OrderingPolicyName(str, Enum):
    """Pre-sort applicato ai candidati prima del passaggio greedy"""
    PRESENTATION = "presentation"
    HASH = "hash"
    FEE = "fee"


DEFAULT_ORDERING: Final[str] = OrderingPolicyName.PRESENTATION.value

# ============================================================================
# VALORI
# ============================================================================

VALUE_ZERO: Final[Decimal] = Decimal(0)

# Limiti di rappresentazione degli importi
VALUE_MAX_SCALE: Final[int] = 18       # cifre decimali
VALUE_MAX_MAGNITUDE: Final[int] = 40   # esponente massimo (adjusted)

_SCALE_QUANTUM: Final[Decimal] = Decimal(1).scaleb(-VALUE_MAX_SCALE)

# Somme e differenze di importi nei limiti restano esatte; un eventuale
# arrotondamento solleva Inexact invece di passare inosservato
VALUE_CONTEXT: Final[Context] = Context(
    prec=2 * (VALUE_MAX_MAGNITUDE + VALUE_MAX_SCALE),
    traps=[InvalidOperation, DivisionByZero, Overflow, Inexact],
)

ValueLike = Union[Decimal, int, str, float]


def to_value(value: ValueLike) -> Decimal:
    """
    Converte un importo in Decimal.

    I float passano dalla loro rappresentazione stringa, così 0.1 resta
    Decimal("0.1") e non l'espansione binaria.

    Limiti: al più VALUE_MAX_SCALE cifre decimali significative e
    ordine di grandezza <= 1E+VALUE_MAX_MAGNITUDE. Zeri decimali oltre
    la scala vengono rimossi.

    Raises:
        ValueError: Se il valore non è un numero finito o esce dai limiti

    Examples:
        >>> to_value(10)
        Decimal('10')
        >>> to_value(0.1)
        Decimal('0.1')
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid value: {value!r}")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation:
            raise ValueError(f"Invalid value: {value!r}")
    elif isinstance(value, float):
        result = Decimal(repr(value))
    else:
        raise ValueError(f"Invalid value type: {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"Value must be finite, got {value!r}")

    if result.is_zero():
        return VALUE_ZERO

    if result.adjusted() > VALUE_MAX_MAGNITUDE:
        raise ValueError(f"Value out of range (max 1E+{VALUE_MAX_MAGNITUDE}): {value!r}")

    _, digits, exponent = result.as_tuple()
    excess = -exponent - VALUE_MAX_SCALE
    if excess > 0:
        if any(digits[-excess:]):
            raise ValueError(
                f"Value has more than {VALUE_MAX_SCALE} decimal places: {value!r}"
            )
        result = result.quantize(_SCALE_QUANTUM, context=VALUE_CONTEXT)

    return result


def sum_values(values: Iterable[Decimal]) -> Decimal:
    """Somma esatta di importi"""
    with localcontext(VALUE_CONTEXT):
        total = VALUE_ZERO
        for value in values:
            total += value
    return total


def subtract_values(minuend: Decimal, subtrahend: Decimal) -> Decimal:
    """Differenza esatta di importi"""
    with localcontext(VALUE_CONTEXT):
        return minuend - subtrahend


def format_value(value: Decimal) -> str:
    """
    Forma canonica di un importo (fixed-point, senza zeri finali).

    Solo manipolazione di stringhe: nessun arrotondamento di contesto,
    quindi importi diversi hanno sempre forme diverse.

    Examples:
        >>> format_value(Decimal("10.50"))
        '10.5'
        >>> format_value(Decimal("1E+1"))
        '10'
    """
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text.lstrip("-") == "0":
        return "0"
    return text


__all__ = [
    "PROJECT_NAME",
    "SOFTWARE_VERSION",
    "SIGNATURE_TYPE",
    "SUPPORTED_SIGNATURE_TYPES",
    "GENESIS_SEED",
    "OrderingPolicyName",
    "DEFAULT_ORDERING",
    "VALUE_ZERO",
    "VALUE_MAX_SCALE",
    "VALUE_MAX_MAGNITUDE",
    "VALUE_CONTEXT",
    "ValueLike",
    "to_value",
    "sum_values",
    "subtract_values",
    "format_value",
]
