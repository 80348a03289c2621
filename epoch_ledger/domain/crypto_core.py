"""
EpochLedger - Cryptographic Core Layer
========================================
Primitive crittografiche usate dal ledger.

Algorithms:
- Hash: SHA-256
- Signature: ECDSA (secp256k1), chiavi PEM, firme DER

Il ledger tratta la verifica firma come collaboratore esterno:
un SignatureVerifier è qualsiasi callable (owner, message, signature) -> bool
deterministico e senza side effect. make_verifier() adatta un
CryptoProvider a questo contratto.

Dependencies:
- cryptography
- hashlib (stdlib)
"""

import hashlib
from abc import abstractmethod
from typing import Callable, Protocol, Tuple

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.exceptions import (
    InvalidSignature as CryptoInvalidSignature,
    UnsupportedAlgorithm,
)

from epoch_ledger.constants import SIGNATURE_TYPE, SUPPORTED_SIGNATURE_TYPES
from epoch_ledger.errors import CryptoError, InvalidKeyError
from epoch_ledger.logging_setup import get_logger


# ============================================================================
# MODULE LOGGER
# ============================================================================

logger = get_logger("crypto")


# ============================================================================
# HASH FUNCTIONS
# ============================================================================

def compute_sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash.

    Usato per:
    - Hash transazioni
    - Chiave del pool di genesis

    Args:
        data: Input data da hashare

    Returns:
        bytes: 32-byte hash digest

    Examples:
        >>> compute_sha256(b"").hex()
        'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
    """
    if not isinstance(data, bytes):
        raise CryptoError(
            f"compute_sha256 requires bytes, got {type(data).__name__}",
            code="INVALID_INPUT_TYPE"
        )

    return hashlib.sha256(data).digest()


# ============================================================================
# CRYPTO PROVIDER PROTOCOL
# ============================================================================

class CryptoProvider(Protocol):
    """Protocol per provider crittografici"""

    @abstractmethod
    def generate_keypair(self) -> Tuple[bytes, bytes]:
        """
        Genera coppia chiavi.

        Returns:
            tuple: (private_key, public_key) in formato serializzato
        """
        pass

    @abstractmethod
    def sign(self, message: bytes, private_key: bytes) -> bytes:
        """Firma messaggio"""
        pass

    @abstractmethod
    def verify(self, message: bytes, signature: bytes, public_key: bytes) -> bool:
        """Verifica firma (mai eccezioni: False se invalida)"""
        pass


# Contratto del verificatore usato dal predicato di validità
SignatureVerifier = Callable[[bytes, bytes, bytes], bool]


# ============================================================================
# ECDSA PROVIDER (secp256k1)
# ============================================================================

class ECDSAProvider:
    """
    Provider ECDSA con curva secp256k1.

    Features:
    - Curve: secp256k1
    - Hash: SHA-256
    - Signature: DER encoded
    - Key format: PEM
    """

    def __init__(self):
        self.curve = ec.SECP256K1()
        self.hash_algo = hashes.SHA256()

    def generate_keypair(self) -> Tuple[bytes, bytes]:
        """
        Genera keypair ECDSA.

        Returns:
            tuple: (private_key_pem, public_key_pem)
        """
        private_key_obj = ec.generate_private_key(self.curve)

        private_pem = private_key_obj.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        )

        public_pem = private_key_obj.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        )

        logger.debug("ECDSA keypair generated")

        return (private_pem, public_pem)

    def sign(self, message: bytes, private_key: bytes) -> bytes:
        """
        Firma messaggio con ECDSA.

        Args:
            message: Messaggio da firmare
            private_key: Private key in formato PEM

        Returns:
            bytes: Firma DER-encoded

        Raises:
            InvalidKeyError: Chiave privata non caricabile
        """
        try:
            private_key_obj = serialization.load_pem_private_key(
                private_key,
                password=None,
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise InvalidKeyError(f"ECDSA signing failed: {e}", code="SIGN_ERROR")

        if not isinstance(private_key_obj, ec.EllipticCurvePrivateKey):
            raise InvalidKeyError(
                "ECDSA signing requires an elliptic curve private key",
                code="SIGN_ERROR"
            )

        signature = private_key_obj.sign(message, ec.ECDSA(self.hash_algo))

        logger.debug(
            "Message signed with ECDSA",
            extra_data={"message_size": len(message), "signature_size": len(signature)}
        )

        return signature

    def verify(self, message: bytes, signature: bytes, public_key: bytes) -> bool:
        """
        Verifica firma ECDSA.

        Chiavi o firme malformate → False.

        Examples:
            >>> provider = ECDSAProvider()
            >>> priv, pub = provider.generate_keypair()
            >>> sig = provider.sign(b"test", priv)
            >>> provider.verify(b"test", sig, pub)
            True
            >>> provider.verify(b"wrong", sig, pub)
            False
        """
        try:
            public_key_obj = serialization.load_pem_public_key(public_key)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            logger.debug("ECDSA verification failed: bad public key", extra_data={"error": str(e)})
            return False

        if not isinstance(public_key_obj, ec.EllipticCurvePublicKey):
            logger.debug("ECDSA verification failed: not an EC public key")
            return False

        try:
            public_key_obj.verify(signature, message, ec.ECDSA(self.hash_algo))
        except CryptoInvalidSignature:
            logger.debug("ECDSA signature verification failed: invalid signature")
            return False
        except (ValueError, TypeError) as e:
            logger.error(f"ECDSA verification error: {e}")
            return False

        return True


# ============================================================================
# PROVIDER FACTORY
# ============================================================================

def get_crypto_provider(algorithm: str = SIGNATURE_TYPE) -> CryptoProvider:
    """
    Factory per ottenere crypto provider.

    Raises:
        CryptoError: Se algorithm non supportato

    Examples:
        >>> isinstance(get_crypto_provider("ecdsa"), ECDSAProvider)
        True
    """
    algorithm = algorithm.lower()

    if algorithm == "ecdsa":
        return ECDSAProvider()

    raise CryptoError(
        f"Unsupported crypto algorithm: {algorithm}",
        code="UNSUPPORTED_ALGORITHM",
        details={"supported": list(SUPPORTED_SIGNATURE_TYPES)}
    )


def make_verifier(algorithm: str = SIGNATURE_TYPE) -> SignatureVerifier:
    """
    Adatta un provider al contratto SignatureVerifier.

    Returns:
        callable: verifier(owner, message, signature) -> bool
    """
    provider = get_crypto_provider(algorithm)

    def verifier(owner: bytes, message: bytes, signature: bytes) -> bool:
        return provider.verify(message, signature, owner)

    return verifier


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def generate_keypair(algorithm: str = SIGNATURE_TYPE) -> Tuple[bytes, bytes]:
    """
    Genera keypair usando provider specificato.

    Returns:
        tuple: (private_key, public_key) in formato serializzato
    """
    return get_crypto_provider(algorithm).generate_keypair()


def sign_message(
    message: bytes,
    private_key: bytes,
    algorithm: str = SIGNATURE_TYPE
) -> bytes:
    """Firma messaggio usando provider specificato"""
    return get_crypto_provider(algorithm).sign(message, private_key)


def verify_signature(
    message: bytes,
    signature: bytes,
    public_key: bytes,
    algorithm: str = SIGNATURE_TYPE
) -> bool:
    """
    Verifica firma usando provider specificato.

    Examples:
        >>> priv, pub = generate_keypair()
        >>> sig = sign_message(b"test", priv)
        >>> verify_signature(b"test", sig, pub)
        True
    """
    return get_crypto_provider(algorithm).verify(message, signature, public_key)


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "compute_sha256",
    "CryptoProvider",
    "SignatureVerifier",
    "ECDSAProvider",
    "get_crypto_provider",
    "make_verifier",
    "generate_keypair",
    "sign_message",
    "verify_signature",
]
