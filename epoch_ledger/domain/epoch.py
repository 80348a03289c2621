"""
EpochLedger - Epoch Processor
===============================
Applica un batch di transazioni candidate a uno snapshot del pool.

Algorithm:
1. (opzionale) pre-sort dei candidati tramite OrderingPolicy
2. per ogni candidato, nell'ordine: valida contro il pool CORRENTE
3. se valido: accetta e applica subito
   - rimuovi tutti gli UTXO reclamati
   - aggiungi ogni output come (hash tx, index)

Conseguenze:
- Greedy, first-seen-wins: tra due candidati che reclamano lo stesso
  UTXO vince il primo; il secondo fallisce il controllo di existence
- Nessuna applicazione parziale
- Il pool è una copia privata: scartare il processor equivale a rollback
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from epoch_ledger.config import LedgerSettings, get_settings
from epoch_ledger.constants import sum_values
from epoch_ledger.domain.crypto_core import SignatureVerifier, make_verifier
from epoch_ledger.domain.models import Transaction, UTXOKey
from epoch_ledger.domain.ordering import OrderingPolicy, get_ordering_policy
from epoch_ledger.domain.utxo import UTXOPool
from epoch_ledger.domain.validation import (
    check_transaction,
    is_valid_transaction,
    transaction_fee,
)
from epoch_ledger.logging_setup import get_logger, PerformanceLogger


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("epoch")


# ============================================================================
# EPOCH SUMMARY
# ============================================================================

@dataclass
class EpochSummary:
    """
    Riepilogo interno dell'ultima epoch.

    Solo informativo: il contratto osservabile resta la lista accettata.

    Attributes:
        epoch (int): Numero progressivo (1 = prima chiamata)
        accepted (List[str]): TXID accettati, in ordine di applicazione
        rejected (List[Tuple[str, str]]): Coppie (TXID, codice RejectReason),
            una per candidato scartato (anche se duplicato)
        total_fees (Decimal): Somma fee delle transazioni accettate
        duration_ms (float): Durata handle_txs
    """

    epoch: int
    accepted: List[str] = field(default_factory=list)
    rejected: List[Tuple[str, str]] = field(default_factory=list)
    total_fees: Decimal = Decimal(0)
    duration_ms: float = 0.0

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)


# ============================================================================
# EPOCH PROCESSOR
# ============================================================================

class EpochProcessor:
    """
    Possiede uno snapshot del pool e applica epoch di transazioni.

    Args:
        utxo_pool: Pool iniziale (copiato: il chiamante non vede mutazioni)
        verifier: Verificatore firme; default da settings.crypto_algorithm
        ordering: Pre-sort; default da settings.epoch_ordering
        settings: Configurazione; default get_settings()

    Examples:
        >>> processor = EpochProcessor(genesis_pool)
        >>> accepted = processor.handle_txs([tx1, tx2])
        >>> new_pool = processor.get_utxo_pool()
    """

    def __init__(
        self,
        utxo_pool: UTXOPool,
        verifier: Optional[SignatureVerifier] = None,
        ordering: Optional[OrderingPolicy] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self.settings = settings or get_settings()
        self._pool = UTXOPool(utxo_pool)
        self._verifier = verifier or make_verifier(self.settings.crypto_algorithm)
        self._ordering = ordering or get_ordering_policy(self.settings.epoch_ordering)

        self.epoch_count = 0
        self.last_summary: Optional[EpochSummary] = None

        logger.debug(
            "EpochProcessor initialized",
            extra_data={
                "utxo_count": len(self._pool),
                "ordering": getattr(self._ordering, "__name__", repr(self._ordering)),
            }
        )

    def is_valid_tx(self, tx: Transaction) -> bool:
        """Validità di tx rispetto al pool corrente (nessun side effect)"""
        return is_valid_transaction(tx, self._pool, self._verifier)

    def handle_txs(self, possible_txs: Iterable[Transaction]) -> List[Transaction]:
        """
        Elabora un'epoch.

        Args:
            possible_txs: Candidati (ordine di presentazione significativo)

        Returns:
            List[Transaction]: Sottoinsieme mutuamente valido, nell'ordine
                di applicazione
        """
        candidates = list(possible_txs)
        ordered = self._ordering(candidates, self._pool)

        self.epoch_count += 1
        summary = EpochSummary(epoch=self.epoch_count)
        accepted: List[Transaction] = []

        with PerformanceLogger(logger, f"handle_txs(epoch={self.epoch_count})") as perf:
            for tx in ordered:
                reason = check_transaction(tx, self._pool, self._verifier)

                if reason is not None:
                    summary.rejected.append((tx.txid, reason.value))
                    continue

                summary.total_fees = sum_values((summary.total_fees, transaction_fee(tx, self._pool)))
                self._apply(tx)

                accepted.append(tx)
                summary.accepted.append(tx.txid)

        summary.duration_ms = perf.elapsed_ms or 0.0
        self.last_summary = summary

        logger.info(
            "Epoch applied",
            extra_data={
                "epoch": summary.epoch,
                "candidates": len(candidates),
                "accepted": summary.accepted_count,
                "rejected": summary.rejected_count,
                "total_fees": str(summary.total_fees),
                "utxo_count": len(self._pool),
            }
        )

        return accepted

    def get_utxo_pool(self) -> UTXOPool:
        """Copia dello snapshot corrente"""
        return UTXOPool(self._pool)

    def _apply(self, tx: Transaction) -> None:
        """Applica tx già validata: consuma input, crea output"""
        tx_hash = tx.compute_hash()

        for inp in tx.inputs:
            self._pool.remove_utxo(inp.utxo_key)

        for idx, output in enumerate(tx.outputs):
            self._pool.add_utxo(UTXOKey(tx_hash, idx), output)

    def __repr__(self) -> str:
        return f"EpochProcessor(epochs={self.epoch_count}, pool={self._pool!r})"


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "EpochSummary",
    "EpochProcessor",
]
