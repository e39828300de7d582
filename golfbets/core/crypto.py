"""
golfbets/core/crypto.py

Ed25519 signing for audit records.

    key.public_key_hex        : @property → 64-char lowercase hex
    key.sign(record_bytes)    : bytes → base64url str, no padding
    AuditKey.verify_detached  : @staticmethod, needs only the public key hex

Audit records store the signer's public key hex, so anyone holding the
log can check every record without access to the private key.
"""

import base64
import binascii
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)


class AuditKey:
    """Ed25519 key pair used to sign audit log records."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key:    Ed25519PrivateKey = private_key
        self._public_key:     Ed25519PublicKey  = private_key.public_key()
        self._public_key_hex: str = (
            self._public_key
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def generate(cls) -> "AuditKey":
        """Generate a new random key pair."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "AuditKey":
        """
        Load a PEM private key.
        Raises FileNotFoundError if path does not exist.
        Raises ValueError if the file is not an Ed25519 PEM key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        try:
            private_key = load_pem_private_key(path.read_bytes(), password=None)
        except Exception as exc:
            raise ValueError(
                f"Failed to load Ed25519 key from {path}: {exc}"
            ) from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(
                f"Key file {path} does not contain an Ed25519 private key"
            )
        return cls(private_key)

    @classmethod
    def load_or_create(cls, path: Path) -> "AuditKey":
        """Load the key at path, generating and saving one if missing."""
        path = Path(path)
        if path.exists():
            return cls.from_file(path)
        key = cls.generate()
        key.save(path)
        return key

    # ── Public Key ────────────────────────────────────────────

    @property
    def public_key_hex(self) -> str:
        return self._public_key_hex

    # ── Record signatures ─────────────────────────────────────

    def sign(self, record_bytes: bytes) -> str:
        """Signature over a record's canonical bytes, base64url without padding."""
        return _encode_signature(self._private_key.sign(record_bytes))

    @staticmethod
    def verify_detached(
        record_bytes:   bytes,
        signature_b64:  str,
        public_key_hex: str,
    ) -> bool:
        """True if signature_b64 is public_key_hex's signature over record_bytes."""
        try:
            signer = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
            signer.verify(_decode_signature(signature_b64), record_bytes)
        except (InvalidSignature, ValueError, TypeError, binascii.Error):
            return False
        return True

    # ── Persistence ───────────────────────────────────────────

    def save(self, path: Path) -> None:
        """
        Write the private key as PEM, creating parent directories.
        Raises RuntimeError on write failure.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            pem = self._private_key.private_bytes(
                encoding=             Encoding.PEM,
                format=               PrivateFormat.PKCS8,
                encryption_algorithm= NoEncryption(),
            )
            path.write_bytes(pem)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to save audit key to {path}: {exc}"
            ) from exc

    def __repr__(self) -> str:
        return f"AuditKey(public_key_hex={self._public_key_hex[:16]}...)"


SIGNATURE_BYTES = 64


def _encode_signature(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _decode_signature(signature_b64: str) -> bytes:
    raw = base64.urlsafe_b64decode(signature_b64 + "=" * (-len(signature_b64) % 4))
    if len(raw) != SIGNATURE_BYTES:
        raise ValueError(f"record signature must be {SIGNATURE_BYTES} bytes, got {len(raw)}")
    return raw
