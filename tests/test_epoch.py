"""
EpochLedger - Epoch Processor Tests
=====================================
Unit tests for EpochProcessor.handle_txs.
"""

import pytest
from decimal import Decimal

from epoch_ledger.domain.epoch import EpochProcessor, EpochSummary
from epoch_ledger.domain.models import Transaction, TxInput, TxOutput, UTXOKey
from epoch_ledger.domain.ordering import order_by_fee
from epoch_ledger.domain.utxo import UTXOPool
from epoch_ledger.domain.validation import RejectReason


@pytest.fixture
def processor(genesis_pool, test_config):
    """Processor sul pool di genesis"""
    return EpochProcessor(genesis_pool, settings=test_config)


class TestSingleTransaction:
    """Pool = {(hashA, 0): Output(10, keyX)}, T1 paga 10 a keyY"""

    def test_accepts_and_applies(self, processor, genesis_key, bob, make_tx):
        t1 = make_tx([genesis_key], [(10, bob.public_key)])

        assert processor.handle_txs([t1]) == [t1]

        pool = processor.get_utxo_pool()
        new_key = UTXOKey(t1.compute_hash(), 0)

        assert len(pool) == 1
        assert pool.get_utxo(new_key) == TxOutput(10, bob.public_key)
        assert not pool.contains(genesis_key)

    def test_outputs_indexed_by_position(self, processor, genesis_key, alice, bob, make_tx):
        tx = make_tx([genesis_key], [(4, bob.public_key), (6, alice.public_key)])
        processor.handle_txs([tx])

        pool = processor.get_utxo_pool()
        tx_hash = tx.compute_hash()
        assert pool.get_utxo(UTXOKey(tx_hash, 0)).owner == bob.public_key
        assert pool.get_utxo(UTXOKey(tx_hash, 1)).owner == alice.public_key

    def test_rejected_has_no_effect(self, processor, genesis_pool, genesis_key, bob, make_tx):
        t2 = make_tx([genesis_key], [(11, bob.public_key)])

        assert processor.handle_txs([t2]) == []
        assert processor.get_utxo_pool() == genesis_pool

    def test_empty_batch(self, processor, genesis_pool):
        assert processor.handle_txs([]) == []
        assert processor.get_utxo_pool() == genesis_pool

    def test_accepts_any_iterable(self, processor, genesis_key, bob, make_tx):
        t1 = make_tx([genesis_key], [(10, bob.public_key)])
        assert processor.handle_txs(tx for tx in [t1]) == [t1]


class TestCrossBatchDoubleSpend:
    """Due transazioni che reclamano lo stesso UTXO"""

    def test_first_seen_wins(self, processor, genesis_key, bob, carol, make_tx):
        t1 = make_tx([genesis_key], [(10, bob.public_key)])
        t2 = make_tx([genesis_key], [(10, carol.public_key)])

        assert processor.handle_txs([t1, t2]) == [t1]

        pool = processor.get_utxo_pool()
        assert not pool.contains(genesis_key)
        assert pool.contains(UTXOKey(t1.compute_hash(), 0))
        assert not pool.contains(UTXOKey(t2.compute_hash(), 0))

    def test_presentation_order_decides(self, processor, genesis_key, bob, carol, make_tx):
        t1 = make_tx([genesis_key], [(10, bob.public_key)])
        t2 = make_tx([genesis_key], [(10, carol.public_key)])

        assert processor.handle_txs([t2, t1]) == [t2]

    def test_conflict_with_partial_overlap(self, two_utxo_pool, genesis_key, bob, carol, make_tx, test_config):
        second = UTXOKey(genesis_key.tx_hash, 1)
        t1 = make_tx([genesis_key], [(10, bob.public_key)])
        t2 = make_tx([genesis_key, second], [(15, carol.public_key)])

        processor = EpochProcessor(two_utxo_pool, settings=test_config)
        assert processor.handle_txs([t1, t2]) == [t1]

        # Nessuna applicazione parziale: il secondo UTXO resta
        assert processor.get_utxo_pool().contains(second)

    def test_same_transaction_twice(self, processor, genesis_key, bob, make_tx):
        t1 = make_tx([genesis_key], [(10, bob.public_key)])
        assert processor.handle_txs([t1, t1]) == [t1]


class TestChainedSpend:
    """Output creati nella stessa epoch sono spendibili subito"""

    def test_spend_output_of_earlier_tx(self, processor, genesis_key, bob, carol, make_tx):
        t1 = make_tx([genesis_key], [(10, bob.public_key)])
        t2 = make_tx([UTXOKey(t1.compute_hash(), 0)], [(10, carol.public_key)], signer=bob)

        assert processor.handle_txs([t1, t2]) == [t1, t2]

        pool = processor.get_utxo_pool()
        assert len(pool) == 1
        assert pool.get_utxo(UTXOKey(t2.compute_hash(), 0)).owner == carol.public_key

    def test_single_pass(self, processor, genesis_key, bob, carol, make_tx):
        """Un figlio presentato prima del padre non viene ritentato"""
        t1 = make_tx([genesis_key], [(10, bob.public_key)])
        t2 = make_tx([UTXOKey(t1.compute_hash(), 0)], [(10, carol.public_key)], signer=bob)

        assert processor.handle_txs([t2, t1]) == [t1]

    def test_across_epochs(self, processor, genesis_key, bob, carol, make_tx):
        t1 = make_tx([genesis_key], [(10, bob.public_key)])
        t2 = make_tx([UTXOKey(t1.compute_hash(), 0)], [(10, carol.public_key)], signer=bob)

        assert processor.handle_txs([t1]) == [t1]
        assert processor.handle_txs([t1, t2]) == [t2]


class TestIsolation:
    """Copy-on-construct"""

    def test_source_pool_unchanged(self, genesis_pool, genesis_key, bob, make_tx, test_config):
        snapshot = UTXOPool(genesis_pool)
        processor = EpochProcessor(genesis_pool, settings=test_config)

        processor.handle_txs([make_tx([genesis_key], [(10, bob.public_key)])])

        assert genesis_pool == snapshot
        assert genesis_pool.contains(genesis_key)

    def test_source_mutation_not_visible(self, genesis_pool, genesis_key, test_config):
        processor = EpochProcessor(genesis_pool, settings=test_config)
        genesis_pool.remove_utxo(genesis_key)

        assert processor.get_utxo_pool().contains(genesis_key)

    def test_returned_pool_is_copy(self, processor, genesis_key):
        returned = processor.get_utxo_pool()
        returned.remove_utxo(genesis_key)

        assert processor.get_utxo_pool().contains(genesis_key)

    def test_discarding_processor_is_rollback(self, genesis_pool, genesis_key, bob, make_tx, test_config):
        tentative = EpochProcessor(genesis_pool, settings=test_config)
        tentative.handle_txs([make_tx([genesis_key], [(10, bob.public_key)])])
        del tentative

        fresh = EpochProcessor(genesis_pool, settings=test_config)
        assert fresh.get_utxo_pool().contains(genesis_key)


class TestIsValidTx:
    """is_valid_tx contro il pool corrente"""

    def test_reflects_current_pool(self, processor, genesis_key, bob, carol, make_tx):
        t1 = make_tx([genesis_key], [(10, bob.public_key)])
        t2 = make_tx([genesis_key], [(10, carol.public_key)])

        assert processor.is_valid_tx(t2)
        processor.handle_txs([t1])
        assert not processor.is_valid_tx(t2)

    def test_no_side_effect(self, processor, genesis_pool, genesis_key, bob, make_tx):
        t1 = make_tx([genesis_key], [(10, bob.public_key)])
        processor.is_valid_tx(t1)
        assert processor.get_utxo_pool() == genesis_pool


class TestEpochSummary:
    """Riepilogo interno"""

    def test_summary_contents(self, processor, genesis_key, bob, carol, make_tx):
        t1 = make_tx([genesis_key], [(7, bob.public_key)])
        t2 = make_tx([genesis_key], [(10, carol.public_key)])

        processor.handle_txs([t1, t2])
        summary = processor.last_summary

        assert isinstance(summary, EpochSummary)
        assert summary.epoch == 1
        assert summary.accepted == [t1.txid]
        assert summary.rejected == [(t2.txid, RejectReason.UTXO_NOT_FOUND.value)]
        assert summary.total_fees == Decimal(3)
        assert summary.accepted_count == 1
        assert summary.rejected_count == 1
        assert summary.duration_ms >= 0

    def test_duplicate_rejections_counted(self, processor, genesis_key, bob, carol, make_tx):
        t1 = make_tx([genesis_key], [(10, bob.public_key)])
        t2 = make_tx([genesis_key], [(10, carol.public_key)])

        processor.handle_txs([t1, t1, t2, t2])
        summary = processor.last_summary

        assert summary.accepted == [t1.txid]
        assert summary.rejected == [
            (t1.txid, RejectReason.UTXO_NOT_FOUND.value),
            (t2.txid, RejectReason.UTXO_NOT_FOUND.value),
            (t2.txid, RejectReason.UTXO_NOT_FOUND.value),
        ]
        assert summary.accepted_count + summary.rejected_count == 4

    def test_large_values_settle_exactly(self, genesis_key, alice, bob, carol, make_tx, test_config):
        pool = UTXOPool()
        pool.add_utxo(genesis_key, TxOutput("1E+28", alice.public_key))
        processor = EpochProcessor(pool, settings=test_config)

        overspend = make_tx([genesis_key], [("1E+28", bob.public_key), ("0.1", bob.public_key)])
        exact = make_tx([genesis_key], [("9999999999999999999999999999.9", carol.public_key)])

        assert processor.handle_txs([overspend, exact]) == [exact]
        summary = processor.last_summary
        assert summary.rejected == [(overspend.txid, RejectReason.INSUFFICIENT_FUNDS.value)]
        assert summary.total_fees == Decimal("0.1")

    def test_epoch_counter(self, processor):
        processor.handle_txs([])
        processor.handle_txs([])
        assert processor.epoch_count == 2
        assert processor.last_summary.epoch == 2

    def test_no_summary_before_first_epoch(self, processor):
        assert processor.last_summary is None


class TestCollaborators:
    """Verificatore e ordinamento iniettati"""

    def test_custom_verifier(self, genesis_pool, genesis_key, bob, test_config):
        tx = Transaction(
            inputs=[TxInput(genesis_key.tx_hash, genesis_key.output_index, signature=b"any")],
            outputs=[TxOutput(10, bob.public_key)],
        )

        accept_all = EpochProcessor(genesis_pool, verifier=lambda o, m, s: True, settings=test_config)
        reject_all = EpochProcessor(genesis_pool, verifier=lambda o, m, s: False, settings=test_config)

        assert accept_all.handle_txs([tx]) == [tx]
        assert reject_all.handle_txs([tx]) == []

    def test_fee_ordering_prefers_higher_fee(self, genesis_pool, genesis_key, bob, carol, make_tx, test_config):
        low_fee = make_tx([genesis_key], [(9, bob.public_key)])
        high_fee = make_tx([genesis_key], [(5, carol.public_key)])

        processor = EpochProcessor(genesis_pool, ordering=order_by_fee, settings=test_config)
        assert processor.handle_txs([low_fee, high_fee]) == [high_fee]

    def test_ordering_from_settings(self, genesis_pool, genesis_key, bob, carol, make_tx, test_config):
        low_fee = make_tx([genesis_key], [(9, bob.public_key)])
        high_fee = make_tx([genesis_key], [(5, carol.public_key)])

        settings = test_config.model_copy(update={"epoch_ordering": "fee"})
        processor = EpochProcessor(genesis_pool, settings=settings)

        assert processor.handle_txs([low_fee, high_fee]) == [high_fee]
