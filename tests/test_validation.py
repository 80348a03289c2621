"""
EpochLedger - Validation Tests
================================
Unit tests for the transaction validity predicate.
"""

import pytest
from decimal import Decimal

from epoch_ledger.domain.crypto_core import compute_sha256
from epoch_ledger.domain.models import Transaction, TxInput, TxOutput, UTXOKey
from epoch_ledger.domain.utxo import UTXOPool
from epoch_ledger.domain.validation import (
    RejectReason,
    check_transaction,
    claimed_input_value,
    is_valid_transaction,
    transaction_fee,
    validate_transaction,
)
from epoch_ledger.errors import (
    TransactionError,
    MissingInputError,
    InvalidSignatureError,
    DoubleSpendError,
    NegativeOutputError,
    InsufficientFundsError,
)


class TestConcreteScenarios:
    """Pool = {(hashA, 0): Output(10, keyX)}"""

    def test_full_spend_valid(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        t1 = make_tx([genesis_key], [(10, bob.public_key)])
        assert is_valid_transaction(t1, genesis_pool, verifier)

    def test_overspend_invalid(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        t2 = make_tx([genesis_key], [(11, bob.public_key)])
        assert not is_valid_transaction(t2, genesis_pool, verifier)
        assert check_transaction(t2, genesis_pool, verifier) == RejectReason.INSUFFICIENT_FUNDS


class TestConservation:
    """sum(output) <= sum(input)"""

    def test_partial_spend_leaves_fee(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        tx = make_tx([genesis_key], [(7, bob.public_key)])
        assert is_valid_transaction(tx, genesis_pool, verifier)
        assert transaction_fee(tx, genesis_pool) == Decimal(3)

    def test_split_outputs(self, genesis_pool, genesis_key, alice, bob, make_tx, verifier):
        tx = make_tx([genesis_key], [("6.5", bob.public_key), ("3.5", alice.public_key)])
        assert is_valid_transaction(tx, genesis_pool, verifier)
        assert transaction_fee(tx, genesis_pool) == Decimal(0)

    def test_fractional_overspend(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        tx = make_tx([genesis_key], [("10.00000001", bob.public_key)])
        assert not is_valid_transaction(tx, genesis_pool, verifier)

    def test_multiple_inputs_summed(self, two_utxo_pool, genesis_key, bob, make_tx, verifier):
        second = UTXOKey(genesis_key.tx_hash, 1)
        tx = make_tx([genesis_key, second], [(15, bob.public_key)])

        assert claimed_input_value(tx, two_utxo_pool) == Decimal(15)
        assert is_valid_transaction(tx, two_utxo_pool, verifier)

    def test_raises_insufficient_funds(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        tx = make_tx([genesis_key], [(11, bob.public_key)])
        with pytest.raises(InsufficientFundsError) as exc:
            validate_transaction(tx, genesis_pool, verifier)
        assert exc.value.details["deficit"] == "1"

    def test_overspend_beyond_default_precision(self, genesis_key, alice, bob, make_tx, verifier):
        """Lo scarto di 0.1 su 1E+28 non si perde nella somma"""
        pool = UTXOPool()
        pool.add_utxo(genesis_key, TxOutput("1E+28", alice.public_key))
        tx = make_tx([genesis_key], [("1E+28", bob.public_key), ("0.1", bob.public_key)])

        assert tx.total_output_value() == Decimal("10000000000000000000000000000.1")
        assert check_transaction(tx, pool, verifier) == RejectReason.INSUFFICIENT_FUNDS
        assert transaction_fee(tx, pool) == Decimal("-0.1")


class TestNegativeOutputs:
    """Output negativi sempre rifiutati"""

    def test_negative_output_rejected(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        # Somma 4 <= 10: solo il controllo sul segno la rifiuta
        tx = make_tx([genesis_key], [(-1, bob.public_key), (5, bob.public_key)])
        assert not is_valid_transaction(tx, genesis_pool, verifier)
        assert check_transaction(tx, genesis_pool, verifier) == RejectReason.NEGATIVE_OUTPUT

    def test_zero_output_allowed(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        tx = make_tx([genesis_key], [(0, bob.public_key)])
        assert is_valid_transaction(tx, genesis_pool, verifier)

    def test_raises_negative_output(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        tx = make_tx([genesis_key], [(-1, bob.public_key)])
        with pytest.raises(NegativeOutputError):
            validate_transaction(tx, genesis_pool, verifier)


class TestInternalDoubleSpend:
    """Stesso UTXO reclamato due volte nella stessa transazione"""

    def test_same_key_twice_rejected(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        tx = make_tx([genesis_key, genesis_key], [(20, bob.public_key)])

        # Ogni firma è valida singolarmente
        owner = genesis_pool.get_utxo(genesis_key).owner
        for idx, inp in enumerate(tx.inputs):
            assert verifier(owner, tx.unsigned_payload(idx), inp.signature)

        assert not is_valid_transaction(tx, genesis_pool, verifier)
        assert check_transaction(tx, genesis_pool, verifier) == RejectReason.DOUBLE_CLAIM

    def test_rejected_even_within_funds(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        tx = make_tx([genesis_key, genesis_key], [(5, bob.public_key)])
        with pytest.raises(DoubleSpendError):
            validate_transaction(tx, genesis_pool, verifier)


class TestExistence:
    """Input che reclamano UTXO assenti"""

    def test_missing_utxo_rejected(self, genesis_pool, bob, make_tx, verifier):
        missing = UTXOKey(compute_sha256(b"hashZ"), 0)
        tx = make_tx([missing], [(1, bob.public_key)])

        assert not is_valid_transaction(tx, genesis_pool, verifier)
        assert check_transaction(tx, genesis_pool, verifier) == RejectReason.UTXO_NOT_FOUND

    def test_wrong_index_rejected(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        tx = make_tx([UTXOKey(genesis_key.tx_hash, 1)], [(1, bob.public_key)])
        with pytest.raises(MissingInputError):
            validate_transaction(tx, genesis_pool, verifier)

    def test_existence_checked_first(self, genesis_pool, bob, make_tx, verifier):
        missing = UTXOKey(compute_sha256(b"hashZ"), 0)
        tx = make_tx([missing], [(-1, bob.public_key)])
        assert check_transaction(tx, genesis_pool, verifier) == RejectReason.UTXO_NOT_FOUND

    def test_empty_pool(self, genesis_key, bob, make_tx, verifier):
        tx = make_tx([genesis_key], [(1, bob.public_key)])
        assert not is_valid_transaction(tx, UTXOPool(), verifier)


class TestAuthenticity:
    """Firme sugli input"""

    def test_wrong_signer_rejected(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        tx = make_tx([genesis_key], [(10, bob.public_key)], signer=bob)
        assert not is_valid_transaction(tx, genesis_pool, verifier)
        assert check_transaction(tx, genesis_pool, verifier) == RejectReason.SIGNATURE_INVALID

    def test_signature_over_other_message(self, genesis_pool, genesis_key, alice, bob, verifier):
        tx = Transaction(
            inputs=[TxInput(genesis_key.tx_hash, genesis_key.output_index)],
            outputs=[TxOutput(10, bob.public_key)],
        )
        forged = tx.with_signature(0, alice.sign(b"something else"))

        with pytest.raises(InvalidSignatureError):
            validate_transaction(forged, genesis_pool, verifier)

    def test_signature_not_transferable(self, genesis_pool, genesis_key, bob, carol, make_tx, verifier):
        """Firma di una tx riusata su output diversi"""
        honest = make_tx([genesis_key], [(10, bob.public_key)])
        stolen = Transaction(
            inputs=honest.inputs,
            outputs=[TxOutput(10, carol.public_key)],
        )
        assert not is_valid_transaction(stolen, genesis_pool, verifier)

    def test_unsigned_input_rejected(self, genesis_pool, genesis_key, bob, verifier):
        tx = Transaction(
            inputs=[TxInput(genesis_key.tx_hash, genesis_key.output_index)],
            outputs=[TxOutput(10, bob.public_key)],
        )
        assert check_transaction(tx, genesis_pool, verifier) == RejectReason.SIGNATURE_INVALID

    def test_garbage_signature_rejected(self, genesis_pool, genesis_key, bob, verifier):
        tx = Transaction(
            inputs=[TxInput(genesis_key.tx_hash, genesis_key.output_index, signature=b"\x00" * 8)],
            outputs=[TxOutput(10, bob.public_key)],
        )
        assert not is_valid_transaction(tx, genesis_pool, verifier)

    def test_one_bad_input_rejects_all(self, two_utxo_pool, genesis_key, bob, make_tx, verifier):
        second = UTXOKey(genesis_key.tx_hash, 1)
        tx = make_tx([genesis_key, second], [(15, bob.public_key)])
        tampered = tx.with_signature(1, bob.sign(tx.unsigned_payload(1)))

        assert not is_valid_transaction(tampered, two_utxo_pool, verifier)

    def test_verifier_contract(self, genesis_pool, genesis_key, alice, bob):
        """Il verificatore riceve (owner, payload, firma) per ogni input"""
        calls = []

        def recording_verifier(owner, message, signature):
            calls.append((owner, message, signature))
            return True

        tx = Transaction(
            inputs=[TxInput(genesis_key.tx_hash, genesis_key.output_index, signature=b"sig")],
            outputs=[TxOutput(10, bob.public_key)],
        )

        assert is_valid_transaction(tx, genesis_pool, recording_verifier)
        assert calls == [(alice.public_key, tx.unsigned_payload(0), b"sig")]


class TestPredicatePurity:
    """Nessuna mutazione nascosta"""

    def test_idempotent(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        valid = make_tx([genesis_key], [(10, bob.public_key)])
        invalid = make_tx([genesis_key], [(11, bob.public_key)])

        assert is_valid_transaction(valid, genesis_pool, verifier) is True
        assert is_valid_transaction(valid, genesis_pool, verifier) is True
        assert is_valid_transaction(invalid, genesis_pool, verifier) is False
        assert is_valid_transaction(invalid, genesis_pool, verifier) is False

    def test_pool_unchanged(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        snapshot = UTXOPool(genesis_pool)
        tx = make_tx([genesis_key], [(10, bob.public_key)])

        is_valid_transaction(tx, genesis_pool, verifier)

        assert genesis_pool == snapshot
        assert genesis_pool.contains(genesis_key)


class TestEdgeCases:
    """Casi limite"""

    def test_empty_transaction_valid(self, genesis_pool, verifier):
        assert is_valid_transaction(Transaction(), genesis_pool, verifier)

    def test_zero_input_with_output_rejected(self, genesis_pool, bob, verifier):
        tx = Transaction(outputs=[TxOutput(1, bob.public_key)])
        assert check_transaction(tx, genesis_pool, verifier) == RejectReason.INSUFFICIENT_FUNDS

    def test_all_errors_are_transaction_errors(self, genesis_pool, genesis_key, bob, make_tx, verifier):
        tx = make_tx([genesis_key], [(11, bob.public_key)])
        with pytest.raises(TransactionError) as exc:
            validate_transaction(tx, genesis_pool, verifier)
        assert exc.value.code == RejectReason.INSUFFICIENT_FUNDS.value
