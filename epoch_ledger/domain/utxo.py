"""
EpochLedger - UTXO Pool
=========================
Mapping UTXOKey → TxOutput di tutti gli output non spesi.

UTXO Pool:
- Point lookup, insert, remove
- Costruzione come copia indipendente di un altro pool
- Nessun lock: posseduto da un solo EpochProcessor, single-thread

Performance:
- O(1) lookup/add/remove per UTXO key
- O(n) copy e query per owner
"""

from __future__ import annotations
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Tuple, Any

from epoch_ledger.constants import sum_values
from epoch_ledger.domain.models import TxOutput, UTXOKey
from epoch_ledger.errors import UTXOError, EpochLedgerException
from epoch_ledger.logging_setup import get_logger
from epoch_ledger.utils.serialization import hex_to_bytes


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("utxo")


# ============================================================================
# UTXO POOL
# ============================================================================

class UTXOPool:
    """
    Pool di UTXO (Unspent Transaction Outputs).

    Ogni entry rappresenta valore non ancora reclamato da alcuna
    transazione applicata. Le chiavi sono uniche per costruzione (dict).

    Args:
        source: Se presente, il nuovo pool è una copia indipendente:
            le mutazioni di uno non sono mai osservabili nell'altro.
            TxOutput e UTXOKey sono immutabili, quindi copiare il mapping
            basta a isolare gli snapshot.

    Examples:
        >>> pool = UTXOPool()
        >>> key = UTXOKey(b"\\x01" * 32, 0)
        >>> pool.add_utxo(key, TxOutput(10, b"owner"))
        >>> pool.contains(key)
        True
        >>> copy = UTXOPool(pool)
        >>> copy.remove_utxo(key)
        TxOutput(value=10, owner=6f776e6572...)
        >>> pool.contains(key)
        True
    """

    def __init__(self, source: Optional[UTXOPool] = None):
        self._utxos: Dict[UTXOKey, TxOutput] = {}

        if source is not None:
            if not isinstance(source, UTXOPool):
                raise UTXOError(
                    f"Cannot copy UTXOPool from {type(source).__name__}",
                    code="INVALID_POOL_SOURCE"
                )
            self._utxos = dict(source._utxos)

        logger.debug("UTXOPool initialized", extra_data={"utxo_count": len(self._utxos)})

    # ========================================================================
    # CORE OPERATIONS
    # ========================================================================

    def contains(self, utxo_key: UTXOKey) -> bool:
        """Check se UTXO presente nel pool"""
        return utxo_key in self._utxos

    def get_utxo(self, utxo_key: UTXOKey) -> Optional[TxOutput]:
        """
        Ottieni output per chiave.

        Returns:
            TxOutput: Output se presente, None altrimenti
        """
        return self._utxos.get(utxo_key)

    def add_utxo(self, utxo_key: UTXOKey, output: TxOutput) -> None:
        """
        Aggiungi UTXO al pool.

        Sovrascrive un'entry esistente con la stessa chiave: evitare
        collisioni è responsabilità del chiamante.
        """
        if not isinstance(utxo_key, UTXOKey) or not isinstance(output, TxOutput):
            raise UTXOError(
                "add_utxo requires (UTXOKey, TxOutput)",
                code="INVALID_UTXO_ENTRY",
                details={"key_type": type(utxo_key).__name__, "output_type": type(output).__name__}
            )

        if utxo_key in self._utxos:
            logger.warning("UTXO overwritten", extra_data={"utxo_key": str(utxo_key)})

        self._utxos[utxo_key] = output

        logger.debug(
            "UTXO added",
            extra_data={"utxo_key": str(utxo_key), "total_utxos": len(self._utxos)}
        )

    def remove_utxo(self, utxo_key: UTXOKey) -> Optional[TxOutput]:
        """
        Rimuovi UTXO dal pool (no-op se assente).

        Returns:
            TxOutput: Output rimosso, None se non presente
        """
        output = self._utxos.pop(utxo_key, None)

        if output is not None:
            logger.debug(
                "UTXO removed",
                extra_data={"utxo_key": str(utxo_key), "total_utxos": len(self._utxos)}
            )

        return output

    def copy(self) -> UTXOPool:
        """Copia indipendente del pool"""
        return UTXOPool(self)

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_all_utxos(self) -> List[UTXOKey]:
        """Tutte le chiavi, ordinate per (hash, index)"""
        return sorted(self._utxos)

    def items(self) -> List[Tuple[UTXOKey, TxOutput]]:
        """Coppie (key, output), ordinate per chiave"""
        return sorted(self._utxos.items(), key=lambda item: item[0])

    def get_utxos_for_owner(self, owner: bytes) -> List[Tuple[UTXOKey, TxOutput]]:
        """
        UTXO posseduti da owner.

        Performance:
            O(n) sul pool (nessun index per owner)
        """
        return [(key, output) for key, output in self.items() if output.owner == owner]

    def get_balance(self, owner: bytes) -> Decimal:
        """Somma valori degli UTXO di owner"""
        return sum_values(output.value for _, output in self.get_utxos_for_owner(owner))

    def total_value(self) -> Decimal:
        """Somma di tutti gli UTXO"""
        return sum_values(output.value for output in self._utxos.values())

    def get_statistics(self) -> Dict[str, Any]:
        """Statistiche pool"""
        return {
            "total_utxos": len(self._utxos),
            "total_owners": len({output.owner for output in self._utxos.values()}),
            "total_value": self.total_value(),
        }

    # ========================================================================
    # SERIALIZATION
    # ========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """
        Snapshot serializzabile.

        Format:
            {"utxos": [{"tx_hash", "output_index", "value", "owner"}, ...]}
        """
        return {
            "utxos": [
                {**key.to_dict(), **output.to_dict()}
                for key, output in self.items()
            ]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> UTXOPool:
        """
        Ricostruisce pool da snapshot.

        Raises:
            UTXOError: Snapshot malformato o chiavi duplicate
        """
        pool = cls()

        entries = data.get("utxos") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise UTXOError("Pool snapshot must contain a 'utxos' list", code="INVALID_SNAPSHOT")

        for idx, entry in enumerate(entries):
            try:
                key = UTXOKey(hex_to_bytes(entry["tx_hash"]), entry["output_index"])
                output = TxOutput.from_dict(entry)
            except (KeyError, TypeError, EpochLedgerException) as e:
                raise UTXOError(
                    f"Invalid pool entry at index {idx}: {e}",
                    code="INVALID_SNAPSHOT",
                    details={"index": idx}
                )

            if pool.contains(key):
                raise UTXOError(
                    f"Duplicate UTXO {key} in snapshot",
                    code="UTXO_DUPLICATE",
                    details={"index": idx}
                )

            pool._utxos[key] = output

        return pool

    # ========================================================================
    # DUNDER
    # ========================================================================

    def __contains__(self, utxo_key: object) -> bool:
        return utxo_key in self._utxos

    def __iter__(self) -> Iterator[UTXOKey]:
        return iter(self.get_all_utxos())

    def __len__(self) -> int:
        return len(self._utxos)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UTXOPool):
            return NotImplemented
        return self._utxos == other._utxos

    def __repr__(self) -> str:
        return f"UTXOPool(utxos={len(self._utxos)}, value={self.total_value()})"


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "UTXOPool",
]
