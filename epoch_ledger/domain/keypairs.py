"""
EpochLedger - KeyPair Management
==================================
Coppie chiavi per firmare gli input delle transazioni.

La gestione wallet completa è fuori scope: qui solo il wrapper
immutabile usato da Transaction.sign_input, dai test e dalla CLI.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Any

from epoch_ledger.domain.crypto_core import get_crypto_provider, CryptoProvider
from epoch_ledger.errors import InvalidKeyError, CryptoError
from epoch_ledger.logging_setup import get_logger
from epoch_ledger.constants import SIGNATURE_TYPE


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("keypairs")


# ============================================================================
# KEYPAIR CLASS
# ============================================================================

@dataclass(frozen=True)
class KeyPair:
    """
    Coppia chiavi crittografiche immutabile.

    Attributes:
        private_key (bytes): Chiave privata (PEM format)
        public_key (bytes): Chiave pubblica (PEM format), owner degli output
        algorithm (str): Algoritmo firma

    Examples:
        >>> keypair = generate_keypair()
        >>> signature = keypair.sign(b"payload")
        >>> keypair.verify(b"payload", signature)
        True
    """

    private_key: bytes = field(repr=False)
    public_key: bytes
    algorithm: str = SIGNATURE_TYPE
    _provider: CryptoProvider = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        """Validazione post-init"""
        if not self.private_key or not isinstance(self.private_key, bytes):
            raise InvalidKeyError(
                "Invalid private_key: must be non-empty bytes",
                code="INVALID_PRIVATE_KEY"
            )

        if not self.public_key or not isinstance(self.public_key, bytes):
            raise InvalidKeyError(
                "Invalid public_key: must be non-empty bytes",
                code="INVALID_PUBLIC_KEY"
            )

        if not self.private_key.startswith(b'-----BEGIN'):
            raise InvalidKeyError(
                "private_key must be in PEM format",
                code="INVALID_KEY_FORMAT"
            )

        if not self.public_key.startswith(b'-----BEGIN'):
            raise InvalidKeyError(
                "public_key must be in PEM format",
                code="INVALID_KEY_FORMAT"
            )

        if self._provider is None:
            object.__setattr__(self, "_provider", get_crypto_provider(self.algorithm))

    def sign(self, message: bytes) -> bytes:
        """
        Firma messaggio con chiave privata.

        Raises:
            CryptoError: message non è bytes
            InvalidKeyError: Se firma fallisce
        """
        if not isinstance(message, bytes):
            raise CryptoError(
                f"Message must be bytes, got {type(message).__name__}",
                code="INVALID_MESSAGE_TYPE"
            )

        return self._provider.sign(message, self.private_key)

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Verifica firma con chiave pubblica (False se invalida)"""
        if not isinstance(message, bytes) or not isinstance(signature, bytes):
            return False

        return self._provider.verify(message, signature, self.public_key)

    def to_dict(self, include_private: bool = False) -> Dict[str, Any]:
        """
        Serializza keypair in dict (hex).

        Warning:
            include_private=True espone la chiave privata
        """
        data = {
            "algorithm": self.algorithm,
            "public_key": self.public_key.hex(),
        }

        if include_private:
            data["private_key"] = self.private_key.hex()

        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> KeyPair:
        """
        Deserializza keypair da dict.

        Raises:
            InvalidKeyError: Se dati mancanti o invalidi
        """
        for required in ("public_key", "private_key"):
            if required not in data:
                raise InvalidKeyError(
                    f"Missing '{required}' in data",
                    code=f"MISSING_{required.upper()}"
                )

        try:
            private_key = bytes.fromhex(data["private_key"])
            public_key = bytes.fromhex(data["public_key"])
        except (ValueError, TypeError) as e:
            raise InvalidKeyError(
                f"Failed to deserialize keypair: {e}",
                code="DESERIALIZATION_ERROR"
            )

        return cls(
            private_key=private_key,
            public_key=public_key,
            algorithm=data.get("algorithm", SIGNATURE_TYPE),
        )

    def __repr__(self) -> str:
        """Safe repr (non espone private key)"""
        return f"KeyPair(public_key={self.public_key.hex()[:32]}...)"


# ============================================================================
# KEYPAIR GENERATION
# ============================================================================

def generate_keypair(algorithm: str = SIGNATURE_TYPE) -> KeyPair:
    """
    Genera nuova coppia chiavi.

    Examples:
        >>> keypair = generate_keypair()
        >>> keypair.public_key.startswith(b"-----BEGIN PUBLIC KEY-----")
        True
    """
    provider = get_crypto_provider(algorithm)
    private_key, public_key = provider.generate_keypair()

    logger.debug("KeyPair generated", extra_data={"algorithm": algorithm})

    return KeyPair(
        private_key=private_key,
        public_key=public_key,
        algorithm=algorithm,
        _provider=provider,
    )


__all__ = [
    "KeyPair",
    "generate_keypair",
]
