"""Encryption of the requester-identifying fields of a DSR."""
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from dsrdesk.security.crypto import FieldCipher, hash_value


@dataclass(frozen=True)
class DSRFields:
    """Plaintext requester fields as submitted on the public form."""

    requester_email: str
    requester_name: str
    request_type: str
    details: Optional[str] = None


@dataclass(frozen=True)
class EncryptedDSRFields:
    """Ciphertext of DSRFields plus the searchable email hash."""

    requester_email: str
    requester_email_hash: str
    requester_name: str
    request_type: str
    details: Optional[str] = None

    def as_columns(self) -> dict[str, Any]:
        """Column values for a DSRRequest row."""
        return {
            "requester_email": self.requester_email,
            "requester_email_hash": self.requester_email_hash,
            "requester_name": self.requester_name,
            "request_type": self.request_type,
            "details": self.details,
        }


def email_search_hash(email: str) -> str:
    """Hash used to look up DSRs by requester email, case-insensitively."""
    return hash_value(email.strip().lower())


class PIICodec:
    """Encrypts and decrypts DSR requester fields with a FieldCipher."""

    def __init__(self, cipher: FieldCipher):
        self.cipher = cipher

    def encrypt_dsr_fields(self, fields: DSRFields) -> EncryptedDSRFields:
        """
        Encrypt each requester field independently.

        The email hash is taken from the lowercased plaintext email, never
        from its ciphertext.
        """
        return EncryptedDSRFields(
            requester_email=self.cipher.encrypt(fields.requester_email),
            requester_email_hash=hash_value(fields.requester_email.lower()),
            requester_name=self.cipher.encrypt(fields.requester_name),
            request_type=self.cipher.encrypt(fields.request_type),
            details=self.cipher.encrypt(fields.details) if fields.details else None,
        )

    def decrypt_dsr_fields(self, fields: Union[EncryptedDSRFields, Mapping[str, Any], Any]) -> DSRFields:
        """
        Decrypt requester fields from a value object, mapping or ORM row.

        The hash is ignored: it has no inverse.
        """
        if isinstance(fields, Mapping):
            get = fields.get
        else:
            def get(name: str) -> Any:
                return getattr(fields, name, None)

        details = get("details")
        return DSRFields(
            requester_email=self.cipher.decrypt(get("requester_email")),
            requester_name=self.cipher.decrypt(get("requester_name")),
            request_type=self.cipher.decrypt(get("request_type")),
            details=self.cipher.decrypt(details) if details else None,
        )
