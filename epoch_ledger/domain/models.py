"""
EpochLedger - Core Domain Models
==================================
Strutture dati fondamentali del ledger UTXO.

Models:
- UTXOKey: Identificatore output (hash tx + index)
- TxOutput: Output transazione (value + owner)
- TxInput: Input transazione (riferimento UTXO + firma)
- Transaction: Transazione con input/output

Tutte le strutture sono immutabili (frozen).

Serializzazione canonica (hash e messaggi da firmare):
- JSON compatto, chiavi ordinate
- bytes → hex
- Decimal → stringa fixed-point normalizzata
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional, List, Dict, Any, Tuple, Sequence

from epoch_ledger.constants import (
    ValueLike,
    to_value,
    format_value,
    sum_values,
)
from epoch_ledger.domain.crypto_core import compute_sha256
from epoch_ledger.errors import ValidationError, format_validation_error
from epoch_ledger.utils.serialization import canonical_json, hex_to_bytes


# ============================================================================
# UTXO KEY
# ============================================================================

@dataclass(frozen=True, order=True)
class UTXOKey:
    """
    Chiave univoca per identificare un output.

    Attributes:
        tx_hash (bytes): Hash della transazione che crea l'output
        output_index (int): Indice nella lista output (0, 1, 2, ...)

    Examples:
        >>> key = UTXOKey(b"\\x01" * 32, 0)
        >>> key == UTXOKey(b"\\x01" * 32, 0)
        True
    """

    tx_hash: bytes
    output_index: int

    def __post_init__(self):
        """Validazione"""
        if not isinstance(self.tx_hash, bytes):
            raise format_validation_error(
                "tx_hash", self.tx_hash, "bytes", code="INVALID_UTXO_HASH"
            )

        if (
            not isinstance(self.output_index, int)
            or isinstance(self.output_index, bool)
            or self.output_index < 0
        ):
            raise format_validation_error(
                "output_index", self.output_index, "non-negative integer",
                code="INVALID_OUTPUT_INDEX"
            )

    @classmethod
    def parse(cls, text: str) -> UTXOKey:
        """
        Parse "<hex>:<index>".

        Examples:
            >>> UTXOKey.parse("ab" * 32 + ":1").output_index
            1
        """
        hex_part, sep, index_part = text.rpartition(":")
        if not sep or not index_part.isdigit():
            raise ValidationError(
                f"Invalid UTXO reference '{text}', expected <hex>:<index>",
                code="INVALID_UTXO_REFERENCE"
            )
        return cls(hex_to_bytes(hex_part), int(index_part))

    def to_dict(self) -> Dict[str, Any]:
        return {"tx_hash": self.tx_hash.hex(), "output_index": self.output_index}

    def __str__(self) -> str:
        return f"{self.tx_hash.hex()}:{self.output_index}"

    def __repr__(self) -> str:
        return f"UTXOKey({self.tx_hash.hex()[:16]}...:{self.output_index})"


# ============================================================================
# TRANSACTION OUTPUT
# ============================================================================

@dataclass(frozen=True)
class TxOutput:
    """
    Output di transazione.

    Attributes:
        value (Decimal): Importo
        owner (bytes): Public key del proprietario (PEM)

    Note:
        Valori negativi sono rappresentabili: il rifiuto spetta al
        predicato di validità, non al modello.

    Examples:
        >>> TxOutput(10, b"pub").value
        Decimal('10')
    """

    value: Decimal
    owner: bytes

    def __post_init__(self):
        """Normalizza value a Decimal"""
        try:
            object.__setattr__(self, "value", to_value(self.value))
        except ValueError as e:
            raise ValidationError(str(e), code="INVALID_OUTPUT_VALUE")

        if not isinstance(self.owner, bytes):
            raise format_validation_error(
                "owner", self.owner, "public key bytes", code="INVALID_OUTPUT_OWNER"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": format_value(self.value),
            "owner": self.owner.hex(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TxOutput:
        return cls(value=data["value"], owner=hex_to_bytes(data["owner"]))

    def __repr__(self) -> str:
        return f"TxOutput(value={format_value(self.value)}, owner={self.owner.hex()[:16]}...)"


# ============================================================================
# TRANSACTION INPUT
# ============================================================================

@dataclass(frozen=True)
class TxInput:
    """
    Input di transazione (riferimento a un output precedente).

    Attributes:
        prev_tx_hash (bytes): Hash transazione che ha creato l'output
        output_index (int): Indice dell'output reclamato
        signature (Optional[bytes]): Firma del proprietario sul
            payload posizionale di questo input
    """

    prev_tx_hash: bytes
    output_index: int
    signature: Optional[bytes] = None

    def __post_init__(self):
        """Validazione post-init"""
        # Valida il riferimento tramite UTXOKey
        UTXOKey(self.prev_tx_hash, self.output_index)

        if self.signature is not None and not isinstance(self.signature, bytes):
            raise format_validation_error(
                "signature", self.signature, "bytes or None", code="INVALID_SIGNATURE_TYPE"
            )

    @property
    def utxo_key(self) -> UTXOKey:
        """UTXO reclamato da questo input"""
        return UTXOKey(self.prev_tx_hash, self.output_index)

    def is_signed(self) -> bool:
        return self.signature is not None

    def to_dict(self, include_signature: bool = True) -> Dict[str, Any]:
        data = {
            "prev_tx_hash": self.prev_tx_hash.hex(),
            "output_index": self.output_index,
        }
        if include_signature:
            data["signature"] = self.signature.hex() if self.signature is not None else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TxInput:
        signature = None
        if data.get("signature") is not None:
            signature = hex_to_bytes(data["signature"])

        return cls(
            prev_tx_hash=hex_to_bytes(data["prev_tx_hash"]),
            output_index=data["output_index"],
            signature=signature,
        )

    def __repr__(self) -> str:
        signed = " [SIGNED]" if self.is_signed() else ""
        return f"TxInput({self.prev_tx_hash.hex()[:16]}...:{self.output_index}{signed})"


# ============================================================================
# TRANSACTION
# ============================================================================

@dataclass(frozen=True)
class Transaction:
    """
    Transazione: lista ordinata di input e lista ordinata di output.

    Attributes:
        inputs (Tuple[TxInput, ...]): Output reclamati, con firme
        outputs (Tuple[TxOutput, ...]): Nuovi output

    Hash e firme:
        - compute_hash(): SHA-256 del contenuto completo, firme incluse
        - unsigned_payload(i): messaggio che il proprietario dell'output
          reclamato dall'input i deve firmare; copre quel riferimento e
          tutti gli output, nessuna firma

    Examples:
        >>> tx = Transaction(
        ...     inputs=[TxInput(b"\\x00" * 32, 0)],
        ...     outputs=[TxOutput(10, b"pub")],
        ... )
        >>> len(tx.compute_hash())
        32
    """

    inputs: Tuple[TxInput, ...] = ()
    outputs: Tuple[TxOutput, ...] = ()

    def __post_init__(self):
        """Congela le liste in tuple"""
        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "outputs", tuple(self.outputs))

        for inp in self.inputs:
            if not isinstance(inp, TxInput):
                raise format_validation_error("inputs", inp, "TxInput", code="INVALID_INPUT")

        for out in self.outputs:
            if not isinstance(out, TxOutput):
                raise format_validation_error("outputs", out, "TxOutput", code="INVALID_OUTPUT")

    def unsigned_payload(self, input_index: int) -> bytes:
        """
        Payload canonico da firmare per l'input in posizione input_index.

        Raises:
            IndexError: Se input_index fuori range
        """
        if not 0 <= input_index < len(self.inputs):
            raise IndexError(
                f"input_index {input_index} out of range for {len(self.inputs)} inputs"
            )

        return canonical_json({
            "input": self.inputs[input_index].to_dict(include_signature=False),
            "outputs": [output.to_dict() for output in self.outputs],
        })

    def compute_hash(self) -> bytes:
        """
        Hash SHA-256 del contenuto (firme incluse).

        Deterministico: stesso contenuto → stesso hash.
        """
        return compute_sha256(canonical_json(self.to_dict()))

    @property
    def txid(self) -> str:
        """Hash in hex"""
        return self.compute_hash().hex()

    def claimed_keys(self) -> List[UTXOKey]:
        """UTXO reclamati, in ordine di input"""
        return [inp.utxo_key for inp in self.inputs]

    def total_output_value(self) -> Decimal:
        """Somma dei valori output"""
        return sum_values(output.value for output in self.outputs)

    def with_signature(self, input_index: int, signature: bytes) -> Transaction:
        """Copia con la firma impostata sull'input input_index"""
        inputs = list(self.inputs)
        inputs[input_index] = replace(inputs[input_index], signature=signature)
        return replace(self, inputs=tuple(inputs))

    def sign_input(self, input_index: int, keypair) -> Transaction:
        """
        Firma l'input input_index con keypair.

        Returns:
            Transaction: Nuova transazione con la firma impostata
        """
        return self.with_signature(input_index, keypair.sign(self.unsigned_payload(input_index)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inputs": [inp.to_dict() for inp in self.inputs],
            "outputs": [output.to_dict() for output in self.outputs],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Transaction:
        return cls(
            inputs=[TxInput.from_dict(inp) for inp in data.get("inputs", [])],
            outputs=[TxOutput.from_dict(out) for out in data.get("outputs", [])],
        )

    def __repr__(self) -> str:
        return (
            f"Transaction(txid={self.txid[:16]}..., "
            f"inputs={len(self.inputs)}, "
            f"outputs={len(self.outputs)})"
        )


def build_transaction(
    spends: Sequence[UTXOKey],
    payments: Sequence[Tuple[ValueLike, bytes]],
    keypair=None,
) -> Transaction:
    """
    Costruisce (e opzionalmente firma) una transazione.

    Args:
        spends: UTXO da reclamare
        payments: Coppie (value, owner)
        keypair: Se presente firma tutti gli input

    Example:
        >>> tx = build_transaction([key], [(10, bob.public_key)], keypair=alice)
    """
    tx = Transaction(
        inputs=[TxInput(key.tx_hash, key.output_index) for key in spends],
        outputs=[TxOutput(value, owner) for value, owner in payments],
    )

    if keypair is not None:
        for idx in range(len(tx.inputs)):
            tx = tx.sign_input(idx, keypair)

    return tx


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "UTXOKey",
    "TxInput",
    "TxOutput",
    "Transaction",
    "build_transaction",
]
