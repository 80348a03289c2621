"""
EpochLedger - Utilities Package
=================================
Common utility functions and helpers.
"""

from epoch_ledger.utils.serialization import (
    canonical_json,
    serialize_to_json,
    bytes_to_hex,
    hex_to_bytes,
    load_json_file,
    save_json_file,
)

__all__ = [
    "canonical_json",
    "serialize_to_json",
    "bytes_to_hex",
    "hex_to_bytes",
    "load_json_file",
    "save_json_file",
]
