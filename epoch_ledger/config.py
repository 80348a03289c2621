"""
EpochLedger - Configuration Management
=======================================
Gestione centralizzata configurazione con Pydantic Settings.
Supporta environment variables, file .env, override runtime.

Features:
- Validazione automatica tipi
- Environment variables con prefisso EPOCHLEDGER_
- File .env support
- Preset development
"""

import os
from pathlib import Path
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from epoch_ledger.constants import (
    SIGNATURE_TYPE,
    SUPPORTED_SIGNATURE_TYPES,
    DEFAULT_ORDERING,
    OrderingPolicyName,
)


# ============================================================================
# MAIN CONFIGURATION CLASS
# ============================================================================

class LedgerSettings(BaseSettings):
    """
    Configurazione principale EpochLedger.

    Example:
        # Da environment
        export EPOCHLEDGER_EPOCH_ORDERING=fee
        export EPOCHLEDGER_LOG_LEVEL=debug

        # Da codice
        config = LedgerSettings(epoch_ordering="hash")
    """

    model_config = SettingsConfigDict(
        env_prefix='EPOCHLEDGER_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
        validate_assignment=True,
    )

    # ========================================================================
    # CRYPTOGRAPHY
    # ========================================================================

    crypto_algorithm: str = Field(
        default=SIGNATURE_TYPE,
        description="Algoritmo firma usato dal verificatore di default"
    )

    # ========================================================================
    # EPOCH PROCESSING
    # ========================================================================

    epoch_ordering: str = Field(
        default=DEFAULT_ORDERING,
        description="Pre-sort candidati: presentation, hash, fee"
    )

    # ========================================================================
    # LOGGING
    # ========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )

    log_to_file: bool = Field(
        default=False,
        description="Salva log su file"
    )

    log_dir: Path = Field(
        default=Path("./logs"),
        description="Directory log files"
    )

    log_format: str = Field(
        default="json",
        description="Formato log file: json, text"
    )

    log_rotation_mb: int = Field(
        default=100,
        ge=1,
        description="Dimensione max file log prima rotation (MB)"
    )

    log_retention_days: int = Field(
        default=30,
        ge=1,
        description="Numero file log conservati"
    )

    enable_console_log: bool = Field(
        default=True,
        description="Log su stderr"
    )

    audit_log_enabled: bool = Field(
        default=False,
        description="Scrivi audit.log per ogni epoch applicata"
    )

    # ========================================================================
    # DISPLAY
    # ========================================================================

    display_precision: int = Field(
        default=8,
        ge=0,
        le=18,
        description="Cifre decimali mostrate dalla CLI"
    )

    # ========================================================================
    # VALIDATORS
    # ========================================================================

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Valida log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Valida formato log"""
        v_lower = v.lower()
        if v_lower not in ('json', 'text'):
            raise ValueError(f"Invalid log_format: {v}. Must be json or text")
        return v_lower

    @field_validator('crypto_algorithm')
    @classmethod
    def validate_crypto_algorithm(cls, v: str) -> str:
        """Valida algoritmo crypto"""
        v_lower = v.lower()
        if v_lower not in SUPPORTED_SIGNATURE_TYPES:
            raise ValueError(
                f"Invalid crypto_algorithm: {v}. Must be one of {list(SUPPORTED_SIGNATURE_TYPES)}"
            )
        return v_lower

    @field_validator('epoch_ordering')
    @classmethod
    def validate_epoch_ordering(cls, v: str) -> str:
        """Valida policy di ordinamento"""
        valid = [policy.value for policy in OrderingPolicyName]
        v_lower = v.lower()
        if v_lower not in valid:
            raise ValueError(f"Invalid epoch_ordering: {v}. Must be one of {valid}")
        return v_lower

    # ========================================================================
    # HELPER METHODS
    # ========================================================================

    def to_dict(self) -> dict:
        """Serializza config"""
        return self.model_dump()

    def to_json(self) -> str:
        """Serializza config in JSON"""
        return self.model_dump_json(indent=2)

    @classmethod
    def from_file(cls, path: Path) -> "LedgerSettings":
        """Carica config da file JSON"""
        return cls.model_validate_json(Path(path).read_text())

    def save_to_file(self, path: Path) -> None:
        """Salva config su file"""
        Path(path).write_text(self.to_json())

    def __repr__(self) -> str:
        return (
            f"LedgerSettings("
            f"crypto_algorithm={self.crypto_algorithm}, "
            f"epoch_ordering={self.epoch_ordering}, "
            f"log_level={self.log_level})"
        )


# ============================================================================
# SINGLETON INSTANCE
# ============================================================================

@lru_cache(maxsize=1)
def get_settings() -> LedgerSettings:
    """
    Ottieni singleton instance di LedgerSettings.

    Cached: chiamate multiple restituiscono la stessa istanza.

    Example:
        >>> config = get_settings()
        >>> config.epoch_ordering
        'presentation'
    """
    return LedgerSettings()


def reload_settings() -> LedgerSettings:
    """
    Ricarica settings (invalida cache).

    Usare quando si cambiano environment variables a runtime.
    """
    get_settings.cache_clear()
    return get_settings()


def override_settings(**kwargs) -> LedgerSettings:
    """
    Settings con valori custom (non toccano il singleton).

    Example:
        >>> test_config = override_settings(epoch_ordering="fee")
    """
    return LedgerSettings(**kwargs)


# ============================================================================
# PROFILE PRESETS
# ============================================================================

def get_development_config() -> LedgerSettings:
    """
    Config preset per development.

    - Log DEBUG in formato testo
    - Audit log attivo
    """
    return LedgerSettings(
        log_level="DEBUG",
        log_format="text",
        audit_log_enabled=True,
    )


# ============================================================================
# CONFIGURATION VALIDATION
# ============================================================================

def validate_config(config: LedgerSettings) -> tuple[bool, list[str]]:
    """
    Valida coerenza configurazione completa.

    Returns:
        tuple: (is_valid, errors_list)

    Example:
        >>> is_valid, errors = validate_config(get_settings())
    """
    errors = []

    needs_log_dir = config.log_to_file or config.audit_log_enabled
    if needs_log_dir and config.log_dir.exists():
        if not config.log_dir.is_dir():
            errors.append(f"log_dir is not a directory: {config.log_dir}")
        elif not os.access(config.log_dir, os.W_OK):
            errors.append(f"Directory not writable: {config.log_dir}")

    if not config.enable_console_log and not config.log_to_file:
        errors.append("WARNING: all log handlers disabled")

    return (len(errors) == 0, errors)


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "LedgerSettings",
    "get_settings",
    "reload_settings",
    "override_settings",
    "get_development_config",
    "validate_config",
]
