"""
EpochLedger - Epoch Ordering Policies
=======================================
Pre-sort opzionale dei candidati prima del passaggio greedy.

L'algoritmo di epoch resta first-seen-wins: una policy decide solo
l'ordine di presentazione. Tutte le policy sono stabili.
"""

from typing import Callable, Dict, List, Sequence

from epoch_ledger.constants import OrderingPolicyName
from epoch_ledger.domain.models import Transaction
from epoch_ledger.domain.utxo import UTXOPool
from epoch_ledger.domain.validation import transaction_fee
from epoch_ledger.errors import ConfigError


OrderingPolicy = Callable[[Sequence[Transaction], UTXOPool], List[Transaction]]


def presentation_order(candidates: Sequence[Transaction], pool: UTXOPool) -> List[Transaction]:
    """Ordine ricevuto, invariato"""
    return list(candidates)


def order_by_hash(candidates: Sequence[Transaction], pool: UTXOPool) -> List[Transaction]:
    """Hash crescente"""
    return sorted(candidates, key=lambda tx: tx.compute_hash())


def order_by_fee(candidates: Sequence[Transaction], pool: UTXOPool) -> List[Transaction]:
    """
    Fee decrescente, calcolata sul pool di inizio epoch.

    Input non risolvibili contano zero; a parità di fee resta l'ordine
    di presentazione.
    """
    fees = [transaction_fee(tx, pool) for tx in candidates]
    order = sorted(range(len(candidates)), key=lambda i: -fees[i])
    return [candidates[i] for i in order]


_POLICIES: Dict[str, OrderingPolicy] = {
    OrderingPolicyName.PRESENTATION.value: presentation_order,
    OrderingPolicyName.HASH.value: order_by_hash,
    OrderingPolicyName.FEE.value: order_by_fee,
}


def get_ordering_policy(name: str) -> OrderingPolicy:
    """
    Risolve una policy per nome.

    Raises:
        ConfigError: Nome sconosciuto
    """
    try:
        return _POLICIES[name.lower()]
    except KeyError:
        raise ConfigError(
            f"Unknown epoch ordering policy: {name}",
            code="UNKNOWN_ORDERING",
            details={"supported": sorted(_POLICIES)}
        )


__all__ = [
    "OrderingPolicy",
    "presentation_order",
    "order_by_hash",
    "order_by_fee",
    "get_ordering_policy",
]
