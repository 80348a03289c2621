"""
EpochLedger - Command Line Interface
======================================
Driver da riga di comando sopra il core del ledger.

Commands:
- keygen: genera keypair su file
- genesis: crea snapshot pool con un solo UTXO
- transfer: costruisce e firma una transazione
- validate: verifica una transazione contro un pool
- apply: elabora un'epoch e scrive il pool aggiornato
- show: mostra il contenuto di un pool

Opzioni globali: --verbose, --quiet, --config FILE (settings JSON al posto
dell'ambiente)

File JSON:
- key:   {"algorithm", "public_key", "private_key"} (hex)
- pool:  {"utxos": [{"tx_hash", "output_index", "value", "owner"}]}
- tx:    {"inputs": [...], "outputs": [...]} oppure lista di tx
"""

from decimal import Context, Decimal
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError as SettingsValidationError
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape

from epoch_ledger.config import LedgerSettings, get_settings
from epoch_ledger.constants import (
    PROJECT_NAME,
    SOFTWARE_VERSION,
    GENESIS_SEED,
    VALUE_CONTEXT,
    format_value,
    subtract_values,
    sum_values,
    to_value,
)
from epoch_ledger.domain.crypto_core import compute_sha256, make_verifier
from epoch_ledger.domain.epoch import EpochProcessor
from epoch_ledger.domain.keypairs import KeyPair, generate_keypair
from epoch_ledger.domain.models import Transaction, TxOutput, UTXOKey, build_transaction
from epoch_ledger.domain.ordering import get_ordering_policy
from epoch_ledger.domain.utxo import UTXOPool
from epoch_ledger.domain.validation import check_transaction
from epoch_ledger.errors import EpochLedgerException, SerializationError
from epoch_ledger.logging_setup import AuditLogger, setup_logging, get_logger
from epoch_ledger.utils.serialization import load_json_file, save_json_file


# ============================================================================
# CLI APP
# ============================================================================

app = typer.Typer(
    name="epochledger",
    help="EpochLedger - UTXO epoch settlement CLI",
    add_completion=False
)

console = Console()

logger = get_logger("cli")


# ============================================================================
# GLOBAL STATE
# ============================================================================

class CLIState:
    """Global CLI state"""
    settings: Optional[LedgerSettings] = None


state = CLIState()


def _settings() -> LedgerSettings:
    return state.settings or get_settings()


# ============================================================================
# FILE HELPERS
# ============================================================================

def _load_keypair(path: Path) -> KeyPair:
    return KeyPair.from_dict(load_json_file(path))


def _load_public_key(path: Path) -> bytes:
    data = load_json_file(path)
    if not isinstance(data, dict) or "public_key" not in data:
        raise SerializationError(f"No public_key in {path}", code="MISSING_PUBLIC_KEY")
    try:
        return bytes.fromhex(data["public_key"])
    except (ValueError, TypeError) as e:
        raise SerializationError(f"Invalid public_key in {path}: {e}", code="INVALID_HEX")


def _load_pool(path: Path) -> UTXOPool:
    return UTXOPool.from_dict(load_json_file(path))


def _load_transactions(paths: List[Path]) -> List[Transaction]:
    transactions: List[Transaction] = []

    for path in paths:
        data = load_json_file(path)
        if isinstance(data, dict) and "transactions" in data:
            data = data["transactions"]
        entries = data if isinstance(data, list) else [data]

        for idx, entry in enumerate(entries):
            try:
                transactions.append(Transaction.from_dict(entry))
            except (KeyError, TypeError, AttributeError) as e:
                raise SerializationError(
                    f"Invalid transaction {idx} in {path}: {e}",
                    code="INVALID_TRANSACTION_FILE"
                )

    logger.debug(
        "Transactions loaded",
        extra_data={"files": [str(p) for p in paths], "count": len(transactions)}
    )

    return transactions


def _fmt(value: Decimal) -> str:
    precision = _settings().display_precision
    quantized = value.quantize(Decimal(1).scaleb(-precision), context=Context(prec=VALUE_CONTEXT.prec))
    return format_value(quantized)


def _fail(message: str) -> None:
    console.print(f"[red]Error: {escape(message)}[/red]")
    raise typer.Exit(1)


# ============================================================================
# COMMANDS
# ============================================================================

@app.command("keygen")
def keygen(
    out: Path = typer.Option(..., "--out", "-o", help="Key file to write"),
):
    """Generate a new keypair"""
    try:
        keypair = generate_keypair(_settings().crypto_algorithm)
        save_json_file(out, keypair.to_dict(include_private=True))
    except EpochLedgerException as e:
        _fail(str(e))

    console.print(f"[green]Keypair written to {out}[/green]")


@app.command("genesis")
def genesis(
    owner: Path = typer.Option(..., "--owner", help="Key file of the genesis owner"),
    value: str = typer.Option(..., "--value", help="Genesis output value"),
    out: Path = typer.Option(..., "--out", "-o", help="Pool file to write"),
):
    """Create a pool snapshot holding a single genesis output"""
    try:
        pool = UTXOPool()
        key = UTXOKey(compute_sha256(GENESIS_SEED), 0)
        pool.add_utxo(key, TxOutput(to_value(value), _load_public_key(owner)))
        save_json_file(out, pool.to_dict())
    except (EpochLedgerException, ValueError) as e:
        _fail(str(e))

    console.print(Panel.fit(
        f"Genesis UTXO: [cyan]{key}[/cyan]\n"
        f"Value: [cyan]{_fmt(to_value(value))}[/cyan]",
        title="Genesis pool",
        border_style="green"
    ))


@app.command("transfer")
def transfer(
    pool_file: Path = typer.Option(..., "--pool", help="Pool snapshot"),
    key_file: Path = typer.Option(..., "--key", help="Key file of the spender"),
    to: Path = typer.Option(..., "--to", help="Key file of the recipient"),
    value: str = typer.Option(..., "--value", help="Value paid to the recipient"),
    spend: Optional[List[str]] = typer.Option(
        None,
        "--spend",
        help="UTXO to spend as <hash>:<index> (default: all UTXOs of the key)"
    ),
    fee: str = typer.Option("0", "--fee", help="Implicit fee left unclaimed"),
    out: Path = typer.Option(..., "--out", "-o", help="Transaction file to write"),
):
    """Build and sign a transaction paying VALUE to the recipient"""
    try:
        pool = _load_pool(pool_file)
        keypair = _load_keypair(key_file)
        recipient = _load_public_key(to)
        amount = to_value(value)
        fee_value = to_value(fee)

        if spend:
            keys = [UTXOKey.parse(ref) for ref in spend]
        else:
            keys = [key for key, _ in pool.get_utxos_for_owner(keypair.public_key)]

        if not keys:
            _fail("no UTXOs to spend")

        available = sum_values(pool.get_utxo(key).value for key in keys if pool.contains(key))
        change = subtract_values(available, sum_values((amount, fee_value)))

        payments = [(amount, recipient)]
        if change > 0:
            payments.append((change, keypair.public_key))

        tx = build_transaction(keys, payments, keypair=keypair)
        save_json_file(out, tx.to_dict())
    except (EpochLedgerException, ValueError) as e:
        _fail(str(e))

    console.print(f"[green]Transaction {tx.txid[:16]}... written to {out}[/green]")
    if change < 0:
        console.print("[yellow]Warning: outputs exceed available inputs, transaction will be rejected[/yellow]")


@app.command("validate")
def validate(
    pool_file: Path = typer.Option(..., "--pool", help="Pool snapshot"),
    tx_file: Path = typer.Option(..., "--tx", help="Transaction file"),
):
    """Check a single transaction against a pool snapshot"""
    try:
        pool = _load_pool(pool_file)
        transactions = _load_transactions([tx_file])
    except EpochLedgerException as e:
        _fail(str(e))

    verifier = make_verifier(_settings().crypto_algorithm)
    all_valid = True

    for tx in transactions:
        reason = check_transaction(tx, pool, verifier)
        if reason is None:
            console.print(f"{tx.txid[:16]}... [green]VALID[/green]")
        else:
            all_valid = False
            console.print(f"{tx.txid[:16]}... [red]REJECTED[/red] ({reason.value})")

    if not all_valid:
        raise typer.Exit(1)


@app.command("apply")
def apply(
    pool_file: Path = typer.Option(..., "--pool", help="Pool snapshot"),
    txs: List[Path] = typer.Option(..., "--txs", help="Transaction file(s), in presentation order"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write the updated pool here"),
    ordering: Optional[str] = typer.Option(
        None,
        "--ordering",
        help="Pre-sort policy: presentation, hash, fee (default from settings)"
    ),
):
    """Process one epoch and print the accepted transactions"""
    settings = _settings()

    try:
        pool = _load_pool(pool_file)
        candidates = _load_transactions(txs)
        policy = get_ordering_policy(ordering or settings.epoch_ordering)
    except EpochLedgerException as e:
        _fail(str(e))

    processor = EpochProcessor(pool, ordering=policy, settings=settings)
    accepted = processor.handle_txs(candidates)
    new_pool = processor.get_utxo_pool()
    summary = processor.last_summary

    table = Table(title=f"Epoch {summary.epoch}")
    table.add_column("TXID", style="cyan")
    table.add_column("Status")
    table.add_column("Reason", style="yellow")

    for txid in summary.accepted:
        table.add_row(txid[:16] + "...", "[green]accepted[/green]", "")
    for txid, reason in summary.rejected:
        table.add_row(txid[:16] + "...", "[red]rejected[/red]", reason)

    console.print(table)
    console.print(
        f"Accepted {len(accepted)}/{len(candidates)} | "
        f"fees {_fmt(summary.total_fees)} | "
        f"UTXOs {len(new_pool)}"
    )

    if out is not None:
        try:
            save_json_file(out, new_pool.to_dict())
        except EpochLedgerException as e:
            _fail(str(e))
        console.print(f"[green]Pool written to {out}[/green]")

    if settings.audit_log_enabled:
        audit = AuditLogger(settings.log_dir)
        audit.log_epoch_applied(
            epoch=summary.epoch,
            accepted_txids=summary.accepted,
            rejected_count=summary.rejected_count,
            utxo_count=len(new_pool),
        )
        audit.close()


@app.command("show")
def show(
    pool_file: Path = typer.Option(..., "--pool", help="Pool snapshot"),
):
    """Show the entries of a pool snapshot"""
    try:
        pool = _load_pool(pool_file)
    except EpochLedgerException as e:
        _fail(str(e))

    table = Table(title=f"UTXO Pool ({len(pool)} entries)")
    table.add_column("UTXO", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_column("Owner", style="magenta")

    for key, output in pool.items():
        table.add_row(
            f"{key.tx_hash.hex()[:16]}...:{key.output_index}",
            _fmt(output.value),
            compute_sha256(output.owner).hex()[:16],
        )

    console.print(table)
    console.print(f"Total value: {_fmt(pool.total_value())}")


@app.command("version")
def version():
    """Show version information"""
    console.print(f"{PROJECT_NAME} v{SOFTWARE_VERSION}")


# ============================================================================
# CALLBACK
# ============================================================================

@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="No console logging"),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="JSON settings file (default: environment / .env)"
    ),
):
    """
    EpochLedger - UTXO epoch settlement CLI

    Valida e applica batch di transazioni su snapshot JSON del pool.
    """
    if config is not None:
        try:
            state.settings = LedgerSettings.from_file(config)
        except (OSError, SettingsValidationError) as e:
            _fail(f"Invalid config file {config}: {e}")
    else:
        state.settings = None

    settings = _settings()

    setup_logging(
        log_level="DEBUG" if verbose else settings.log_level,
        log_to_file=settings.log_to_file,
        log_dir=settings.log_dir,
        log_format=settings.log_format,
        log_rotation_mb=settings.log_rotation_mb,
        log_retention_days=settings.log_retention_days,
        enable_console=settings.enable_console_log and not quiet,
    )


if __name__ == "__main__":
    app()


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "app",
]
