"""
EpochLedger - Custom Exceptions
=================================
Gerarchia di eccezioni del ledger.

Il predicato di validità e l'elaborazione delle epoch NON sollevano eccezioni
per transazioni invalide: il rifiuto è solo un booleano / un'omissione.
Le eccezioni sotto servono a:
- diagnostica interna (validate_transaction)
- costruzione modelli
- chiavi, configurazione, file IO
"""

from typing import Optional, Any


# ============================================================================
# BASE EXCEPTION
# ============================================================================

class EpochLedgerException(Exception):
    """
    Eccezione base per tutte le eccezioni EpochLedger.

    Attributes:
        message (str): Messaggio errore
        code (str): Codice errore (es. "UTXO_NOT_FOUND")
        details (dict): Dettagli aggiuntivi
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Serializza eccezione per CLI/logging"""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            return f"[{self.code}] {self.message} | Details: {self.details}"
        return f"[{self.code}] {self.message}"


# ============================================================================
# CONFIGURATION ERRORS
# ============================================================================

class ConfigError(EpochLedgerException):
    """Errore configurazione sistema"""
    pass


# ============================================================================
# VALIDATION ERRORS
# ============================================================================

class ValidationError(EpochLedgerException):
    """Errore validazione (base)"""
    pass


class TransactionError(ValidationError):
    """Transazione rifiutata dal predicato di validità"""
    pass


class MissingInputError(TransactionError):
    """Input che reclama un UTXO assente dal pool"""
    pass


class InvalidSignatureError(TransactionError):
    """Firma mancante o non autentica"""
    pass


class DoubleSpendError(TransactionError):
    """Stesso UTXO reclamato più volte"""
    pass


class NegativeOutputError(TransactionError):
    """Output con valore negativo"""
    pass


class InsufficientFundsError(TransactionError):
    """Somma output maggiore della somma input"""
    pass


# ============================================================================
# CRYPTOGRAPHY ERRORS
# ============================================================================

class CryptoError(EpochLedgerException):
    """Errore crittografia"""
    pass


class InvalidKeyError(CryptoError):
    """Chiave crittografica invalida"""
    pass


# ============================================================================
# SERIALIZATION ERRORS
# ============================================================================

class SerializationError(EpochLedgerException):
    """Errore lettura/scrittura snapshot JSON"""
    pass


# ============================================================================
# UTXO ERRORS
# ============================================================================

class UTXOError(EpochLedgerException):
    """Errore UTXO pool"""
    pass


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def format_validation_error(
    field: str,
    value: Any,
    expected: str,
    code: Optional[str] = None
) -> ValidationError:
    """
    Helper per creare ValidationError formattati.

    Args:
        field: Nome campo invalido
        value: Valore ricevuto
        expected: Valore/tipo atteso
        code: Codice errore custom

    Returns:
        ValidationError: Eccezione formattata

    Example:
        >>> raise format_validation_error("output_index", -1, "non-negative integer")
    """
    return ValidationError(
        message=f"Invalid field '{field}': expected {expected}, got {value!r}",
        code=code or "VALIDATION_FAILED",
        details={"field": field, "value": repr(value), "expected": expected}
    )


# ============================================================================
# EXPORT ALL
# ============================================================================

__all__ = [
    # Base
    "EpochLedgerException",

    # Config
    "ConfigError",

    # Validation
    "ValidationError",
    "TransactionError",
    "MissingInputError",
    "InvalidSignatureError",
    "DoubleSpendError",
    "NegativeOutputError",
    "InsufficientFundsError",

    # Crypto
    "CryptoError",
    "InvalidKeyError",

    # Serialization
    "SerializationError",

    # UTXO
    "UTXOError",

    # Helpers
    "format_validation_error",
]
