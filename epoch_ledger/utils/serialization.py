"""
EpochLedger - Serialization Utilities
=======================================
JSON canonico per hash/firme e helper per file snapshot.
"""

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Union

from epoch_ledger.constants import format_value
from epoch_ledger.errors import SerializationError
from epoch_ledger.logging_setup import get_logger

logger = get_logger("utils.serialization")


# ============================================================================
# JSON SERIALIZATION
# ============================================================================

def _default_handler(o: Any) -> Any:
    if isinstance(o, bytes):
        return o.hex()
    if isinstance(o, Decimal):
        return format_value(o)
    if hasattr(o, 'to_dict'):
        return o.to_dict()
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


def canonical_json(obj: Any) -> bytes:
    """
    Serializzazione deterministica (sorted keys, separatori compatti).

    Usata per hash transazione e messaggi da firmare: stesso contenuto →
    stessi bytes.

    Examples:
        >>> canonical_json({"b": 1, "a": b"\\x01"})
        b'{"a":"01","b":1}'
    """
    return json.dumps(
        obj,
        default=_default_handler,
        sort_keys=True,
        separators=(',', ':'),
    ).encode('utf-8')


def serialize_to_json(obj: Any, indent: int = 2) -> str:
    """
    Serialize object to JSON string (bytes → hex, Decimal → stringa).
    """
    try:
        return json.dumps(obj, default=_default_handler, indent=indent)
    except TypeError as e:
        logger.error(f"Serialization failed: {e}")
        raise SerializationError(f"Serialization failed: {e}", code="SERIALIZE_FAILED")


# ============================================================================
# BYTES/HEX CONVERSION
# ============================================================================

def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string"""
    return data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """
    Convert hex string to bytes.

    Raises:
        SerializationError: Se la stringa non è hex valido
    """
    if not isinstance(hex_str, str):
        raise SerializationError(
            f"Expected hex string, got {type(hex_str).__name__}",
            code="INVALID_HEX"
        )
    try:
        return bytes.fromhex(hex_str)
    except ValueError as e:
        raise SerializationError(f"Invalid hex string: {e}", code="INVALID_HEX")


# ============================================================================
# FILE HELPERS
# ============================================================================

def load_json_file(path: Union[str, Path]) -> Any:
    """
    Carica un file JSON.

    Raises:
        SerializationError: File mancante o JSON invalido
    """
    path = Path(path)
    try:
        with open(path, encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError:
        raise SerializationError(f"File not found: {path}", code="FILE_NOT_FOUND")
    except json.JSONDecodeError as e:
        logger.error(f"Deserialization failed", extra_data={"path": str(path), "error": str(e)})
        raise SerializationError(
            f"Invalid JSON in {path}: {e}",
            code="INVALID_JSON",
            details={"path": str(path)}
        )


def save_json_file(path: Union[str, Path], obj: Any) -> None:
    """Scrive obj come JSON indentato (crea directory padre)"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize_to_json(obj) + "\n", encoding='utf-8')

    logger.debug("JSON file written", extra_data={"path": str(path)})


__all__ = [
    "canonical_json",
    "serialize_to_json",
    "bytes_to_hex",
    "hex_to_bytes",
    "load_json_file",
    "save_json_file",
]
