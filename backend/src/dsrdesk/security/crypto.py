"""Field-level encryption and hashing primitives for requester PII.

Values are encrypted with AES-256-CBC under a key and IV that are fixed for a
given ``CryptoConfig``. The same plaintext therefore always produces the same
ciphertext, which keeps exact-match lookups possible without a separate
index. This protects data at rest from someone holding only the database; it
does not hide repeated values from frequency analysis.

Searchable equality uses ``hash_value`` (SHA-256 of the normalised plaintext)
rather than the ciphertext itself.
"""
import hashlib
from dataclasses import dataclass
from typing import Optional

import structlog
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

logger = structlog.get_logger(__name__)

KEY_LENGTH = 32
IV_LENGTH = 16

# Development-only fallbacks. Never rely on these outside local environments.
DEV_FALLBACK_KEY = "dsrdesk-dev-only-encryption-key!"
DEV_FALLBACK_IV = "dsrdesk-dev-iv!!"


class CryptoError(Exception):
    """Raised when a strict caller unwraps a failed crypto result."""


class CryptoConfigError(CryptoError):
    """Raised when encryption settings are refused in strict mode."""


@dataclass(frozen=True)
class CryptoResult:
    """Outcome of a single encrypt/decrypt call."""

    ok: bool
    value: str
    error: Optional[str] = None

    @classmethod
    def success(cls, value: str) -> "CryptoResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, original: str, error: str) -> "CryptoResult":
        return cls(ok=False, value=original, error=error)

    def unwrap(self) -> str:
        """Return the value or raise CryptoError if the operation failed."""
        if not self.ok:
            raise CryptoError(self.error or "crypto operation failed")
        return self.value


@dataclass(frozen=True)
class CryptoConfig:
    """Key material for field encryption, built once at startup."""

    key: str
    iv: str
    using_fallback: bool = False

    @property
    def key_bytes(self) -> bytes:
        return self.key.encode("utf-8")[:KEY_LENGTH]

    @property
    def iv_bytes(self) -> bytes:
        return self.iv.encode("utf-8")[:IV_LENGTH]

    @classmethod
    def from_values(
        cls,
        key: Optional[str],
        iv: Optional[str],
        *,
        production: bool = False,
        strict: bool = False,
    ) -> "CryptoConfig":
        """
        Build a config, substituting development fallbacks for missing values.

        Args:
            key: Configured encryption key (needs at least 32 characters)
            iv: Configured initialization vector (needs at least 16 characters)
            production: Whether the process runs in production
            strict: Refuse fallbacks in production instead of warning

        Returns:
            CryptoConfig ready for FieldCipher

        Raises:
            CryptoConfigError: If strict production mode rejects a fallback
        """
        using_fallback = False

        if not key or len(key) < KEY_LENGTH:
            logger.warning(
                "encryption_key_invalid",
                reason="missing" if not key else "too_short",
                min_length=KEY_LENGTH,
                fallback="development_only",
            )
            key = DEV_FALLBACK_KEY
            using_fallback = True

        if not iv or len(iv) < IV_LENGTH:
            logger.warning(
                "encryption_iv_invalid",
                reason="missing" if not iv else "too_short",
                min_length=IV_LENGTH,
                fallback="development_only",
            )
            iv = DEV_FALLBACK_IV
            using_fallback = True

        if using_fallback and production and strict:
            raise CryptoConfigError(
                "ENCRYPTION_KEY and ENCRYPTION_IV must be configured in production"
            )

        return cls(key=key, iv=iv, using_fallback=using_fallback)

    @classmethod
    def from_settings(cls, settings) -> "CryptoConfig":
        """Build a config from application settings."""
        return cls.from_values(
            settings.encryption_key,
            settings.encryption_iv,
            production=settings.app_env == "production",
            strict=settings.encryption_strict,
        )


def hash_value(value: str) -> str:
    """
    One-way SHA-256 digest used for equality search.

    The digest is case-sensitive; normalise before hashing when a
    case-insensitive match is wanted.
    """
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class FieldCipher:
    """Deterministic AES-256-CBC cipher for individual string fields."""

    def __init__(self, config: CryptoConfig):
        self.config = config

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(self.config.key_bytes), modes.CBC(self.config.iv_bytes))

    def try_encrypt(self, plaintext: str) -> CryptoResult:
        """Encrypt to a hex string, reporting failure instead of raising."""
        try:
            padder = padding.PKCS7(algorithms.AES.block_size).padder()
            padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
            encryptor = self._cipher().encryptor()
            encrypted = encryptor.update(padded) + encryptor.finalize()
            return CryptoResult.success(encrypted.hex())
        except Exception as e:
            return CryptoResult.failure(plaintext, f"{type(e).__name__}: {e}")

    def try_decrypt(self, ciphertext: str) -> CryptoResult:
        """Decrypt a hex string, reporting failure instead of raising."""
        try:
            raw = bytes.fromhex(ciphertext)
            decryptor = self._cipher().decryptor()
            padded = decryptor.update(raw) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return CryptoResult.success(plaintext.decode("utf-8"))
        except Exception as e:
            return CryptoResult.failure(ciphertext, f"{type(e).__name__}: {e}")

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a value, degrading to the plaintext on failure.

        The failure is logged; callers always receive a string.
        """
        result = self.try_encrypt(plaintext)
        if not result.ok:
            logger.error("encryption_failed", error=result.error)
        return result.value

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a value, returning the input unchanged on failure.

        Rows written before encryption was enabled decrypt to themselves.
        """
        result = self.try_decrypt(ciphertext)
        if not result.ok:
            logger.error("decryption_failed", error=result.error)
        return result.value
