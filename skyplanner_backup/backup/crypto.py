"""Compression and authenticated encryption of backup documents.

Blob layout: IV (16 bytes) || GCM auth tag (16 bytes) || ciphertext, where the
ciphertext is AES-256-GCM over gzip(JSON document). The key is derived with
scrypt from the operator passphrase and a fixed application salt.
"""

import gzip
import os
import zlib

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .document import decode_document
from .models import BackupDocument
from ..config import MIN_PASSPHRASE_LENGTH
from ..exceptions import ConfigurationError, CorruptBackupError

KEY_SALT = b"skyplanner-backup-salt"
KEY_LENGTH = 32
IV_LENGTH = 16
AUTH_TAG_LENGTH = 16
HEADER_LENGTH = IV_LENGTH + AUTH_TAG_LENGTH

# scrypt cost parameters; changing them makes existing backups unreadable
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1


def derive_key(passphrase: str) -> bytes:
    """Derive the 32-byte AES key from the operator passphrase."""
    if not passphrase or len(passphrase) < MIN_PASSPHRASE_LENGTH:
        raise ConfigurationError(
            f"BACKUP_ENCRYPTION_KEY must be set (min {MIN_PASSPHRASE_LENGTH} characters)"
        )
    kdf = Scrypt(salt=KEY_SALT, length=KEY_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(passphrase.encode("utf-8"))


class BackupCipher:
    """gzip + AES-256-GCM with a key derived once per run and held only in memory."""

    def __init__(self, passphrase: str):
        self._aead = AESGCM(derive_key(passphrase))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key=<hidden>)"

    def encrypt(self, plaintext: bytes) -> bytes:
        iv = os.urandom(IV_LENGTH)
        sealed = self._aead.encrypt(iv, gzip.compress(plaintext), None)
        # AESGCM appends the tag; the blob stores it ahead of the ciphertext
        ciphertext, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
        return iv + tag + ciphertext

    def decrypt(self, blob: bytes) -> bytes:
        """Authenticate, decrypt and gunzip a blob.

        Raises:
            CorruptBackupError: If the blob is truncated, tampered with, or not gzip inside
        """
        if len(blob) < HEADER_LENGTH:
            raise CorruptBackupError(
                f"Blob is {len(blob)} bytes, shorter than the {HEADER_LENGTH}-byte header"
            )
        iv = blob[:IV_LENGTH]
        tag = blob[IV_LENGTH:HEADER_LENGTH]
        ciphertext = blob[HEADER_LENGTH:]

        try:
            compressed = self._aead.decrypt(iv, ciphertext + tag, None)
        except InvalidTag as e:
            raise CorruptBackupError("Authentication failed: wrong key or tampered blob") from e

        try:
            return gzip.decompress(compressed)
        except (OSError, EOFError, zlib.error) as e:
            raise CorruptBackupError(f"Decrypted payload is not valid gzip: {e}") from e

    def decrypt_document(self, blob: bytes) -> BackupDocument:
        return decode_document(self.decrypt(blob))
