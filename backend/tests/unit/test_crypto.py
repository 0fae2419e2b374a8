"""Unit tests for field encryption and hashing."""
import pytest

from dsrdesk.security.crypto import (
    DEV_FALLBACK_IV,
    DEV_FALLBACK_KEY,
    CryptoConfig,
    CryptoConfigError,
    CryptoError,
    FieldCipher,
    hash_value,
)


def test_round_trip(cipher: FieldCipher) -> None:
    """Decrypting a ciphertext gives back the plaintext."""
    for plaintext in ["a@b.com", "Jane Doe", "ACCESS", "Ünïcødé ✓", "x" * 1000]:
        ciphertext = cipher.encrypt(plaintext)
        assert ciphertext != plaintext
        assert cipher.decrypt(ciphertext) == plaintext


def test_empty_string_round_trip(cipher: FieldCipher) -> None:
    """An empty value still encrypts to one padded block."""
    ciphertext = cipher.encrypt("")
    assert len(ciphertext) == 32
    assert cipher.decrypt(ciphertext) == ""


def test_encryption_is_deterministic(cipher: FieldCipher) -> None:
    """Same plaintext under the same config gives the same ciphertext."""
    assert cipher.encrypt("a@b.com") == cipher.encrypt("a@b.com")
    assert cipher.encrypt("a@b.com") != cipher.encrypt("A@B.com")


def test_ciphertext_is_lowercase_hex(cipher: FieldCipher) -> None:
    ciphertext = cipher.encrypt("hello")
    assert all(c in "0123456789abcdef" for c in ciphertext)
    assert len(ciphertext) % 32 == 0


def test_only_leading_key_and_iv_bytes_are_used() -> None:
    """Characters past 32 (key) and 16 (IV) do not change the output."""
    short = FieldCipher(CryptoConfig.from_values("k" * 32, "i" * 16))
    long = FieldCipher(CryptoConfig.from_values("k" * 32 + "extra", "i" * 16 + "extra"))
    assert short.encrypt("value") == long.encrypt("value")


def test_different_keys_give_different_ciphertext() -> None:
    first = FieldCipher(CryptoConfig.from_values("a" * 32, "i" * 16))
    second = FieldCipher(CryptoConfig.from_values("b" * 32, "i" * 16))
    assert first.encrypt("value") != second.encrypt("value")


def test_hash_value_known_digest() -> None:
    assert hash_value("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_hash_value_deterministic_and_case_sensitive() -> None:
    assert hash_value("a@b.com") == hash_value("a@b.com")
    assert hash_value("a@b.com") != hash_value("A@B.com")
    assert len(hash_value("anything")) == 64


@pytest.mark.parametrize("bad_input", ["not-hex-at-all", "abcd", ""])
def test_decrypt_failure_returns_input(cipher: FieldCipher, bad_input: str) -> None:
    """Values that are not valid ciphertext come back unchanged."""
    assert cipher.decrypt(bad_input) == bad_input


def test_try_decrypt_reports_failure(cipher: FieldCipher) -> None:
    result = cipher.try_decrypt("zz")
    assert result.ok is False
    assert result.value == "zz"
    assert result.error
    with pytest.raises(CryptoError):
        result.unwrap()


def test_try_encrypt_reports_failure(cipher: FieldCipher) -> None:
    result = cipher.try_encrypt(None)  # type: ignore[arg-type]
    assert result.ok is False
    assert cipher.encrypt(None) is None  # type: ignore[arg-type]


def test_try_encrypt_success_unwraps(cipher: FieldCipher) -> None:
    result = cipher.try_encrypt("value")
    assert result.ok is True
    assert result.unwrap() == cipher.encrypt("value")


def test_decrypt_with_wrong_key_does_not_raise() -> None:
    """Ciphertext from another key either fails padding or decodes to garbage."""
    ciphertext = FieldCipher(CryptoConfig.from_values("a" * 32, "i" * 16)).encrypt("secret")
    other = FieldCipher(CryptoConfig.from_values("b" * 32, "i" * 16))
    assert other.decrypt(ciphertext) != "secret"


def test_missing_key_material_uses_fallback() -> None:
    config = CryptoConfig.from_values(None, None)
    assert config.using_fallback is True
    assert config.key == DEV_FALLBACK_KEY
    assert config.iv == DEV_FALLBACK_IV
    assert len(config.key_bytes) == 32
    assert len(config.iv_bytes) == 16


def test_short_key_uses_fallback() -> None:
    config = CryptoConfig.from_values("too-short", "i" * 16)
    assert config.using_fallback is True
    assert config.key == DEV_FALLBACK_KEY
    assert config.iv == "i" * 16


def test_valid_key_material_is_kept() -> None:
    config = CryptoConfig.from_values("k" * 32, "i" * 16)
    assert config.using_fallback is False


def test_production_without_strict_still_falls_back() -> None:
    config = CryptoConfig.from_values(None, None, production=True, strict=False)
    assert config.using_fallback is True


def test_strict_production_refuses_fallback() -> None:
    with pytest.raises(CryptoConfigError):
        CryptoConfig.from_values(None, "i" * 16, production=True, strict=True)


def test_strict_outside_production_allows_fallback() -> None:
    config = CryptoConfig.from_values(None, None, production=False, strict=True)
    assert config.using_fallback is True
