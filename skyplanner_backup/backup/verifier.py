"""Round-trip verification of encrypted blobs, before and after upload."""

from dataclasses import dataclass

from .crypto import BackupCipher
from .document import decode_document
from .gateway import ObjectStoreGateway
from .._utils import compute_sha256, logger
from ..exceptions import (
    CorruptBackupError,
    LocalVerificationError,
    UploadVerificationError,
)


@dataclass
class VerificationResult:
    sha256: str
    tables_verified: int


class IntegrityVerifier:
    """Decrypt a produced blob and compare its plaintext hash to the original."""

    def __init__(self, cipher: BackupCipher):
        self.cipher = cipher

    def verify_local(self, blob: bytes, expected_sha256: str) -> VerificationResult:
        """Check a blob before it leaves the process.

        Raises:
            LocalVerificationError: The blob does not decrypt to the original plaintext
        """
        try:
            plaintext = self.cipher.decrypt(blob)
        except CorruptBackupError as e:
            raise LocalVerificationError(f"Fresh blob does not decrypt: {e}") from e

        actual = compute_sha256(plaintext)
        if actual != expected_sha256:
            raise LocalVerificationError(
                f"Integrity check failed: original hash {expected_sha256}, decrypted hash {actual}"
            )

        try:
            document = decode_document(plaintext)
        except CorruptBackupError as e:
            raise LocalVerificationError(f"Decrypted backup is not a valid document: {e}") from e

        logger.info(f"Local verification OK (SHA-256: {actual[:16]}..., {len(document.tables)} tables)")
        return VerificationResult(sha256=actual, tables_verified=len(document.tables))

    async def verify_uploaded(
        self,
        gateway: ObjectStoreGateway,
        name: str,
        expected_sha256: str,
    ) -> VerificationResult:
        """Download ``name`` again and check it against the original hash.

        Raises:
            UploadVerificationError: The stored copy is missing, undecryptable or different
        """
        try:
            blob = await gateway.download(name)
            plaintext = self.cipher.decrypt(blob)
        except CorruptBackupError as e:
            raise UploadVerificationError(f"Uploaded blob does not decrypt: {e}", name) from e
        except Exception as e:
            raise UploadVerificationError(f"Could not download backup for verification: {e}", name) from e

        actual = compute_sha256(plaintext)
        if actual != expected_sha256:
            raise UploadVerificationError(
                f"Uploaded file is corrupt: expected hash {expected_sha256}, got {actual}", name
            )

        try:
            document = decode_document(plaintext)
        except CorruptBackupError as e:
            raise UploadVerificationError(f"Uploaded backup is not a valid document: {e}", name) from e

        logger.info(f"Uploaded file verified: {name}")
        return VerificationResult(sha256=actual, tables_verified=len(document.tables))
