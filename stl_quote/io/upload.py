"""
Filesystem store for uploaded part files.

Uploads are checked (extension, size, emptiness) before anything is written,
then stored as ``<epoch-ms>-<original name>`` in the upload directory. The
returned reference is that stored file name; callers hand it back to
resolve() to locate the file for geometry analysis.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Union

from stl_quote.config import MAX_UPLOAD_BYTES, UPLOAD_EXTENSIONS
from stl_quote.errors import (
    EmptyInputError,
    FileTooLargeError,
    UnknownUploadError,
    UnsupportedExtensionError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredUpload:
    """Result of a successful upload."""
    reference: str
    path: Path
    original_name: str
    size_bytes: int

    def to_dict(self) -> dict:
        return {
            'message': 'File uploaded successfully',
            'filename': self.reference,
            'path': str(self.path),
        }


class UploadStore:
    """Directory-backed upload storage.

    Args:
        upload_dir: directory for stored files (created on first save)
        max_bytes: largest accepted payload
        allowed_extensions: extensions accepted at this boundary; .step is
            stored even though the mesh loader will refuse it later
    """

    def __init__(
        self,
        upload_dir: Union[str, Path],
        max_bytes: int = MAX_UPLOAD_BYTES,
        allowed_extensions: Iterable[str] = UPLOAD_EXTENSIONS,
    ):
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes
        self.allowed_extensions = tuple(ext.lower() for ext in allowed_extensions)

    def validate_upload(self, filename: str, size: int) -> None:
        """Reject an upload before it is written.

        Raises:
            UnsupportedExtensionError: extension not in allowed_extensions
            FileTooLargeError: size above max_bytes
            EmptyInputError: zero-byte payload
        """
        if Path(filename).suffix.lower() not in self.allowed_extensions:
            raise UnsupportedExtensionError(filename, self.allowed_extensions)
        if size > self.max_bytes:
            raise FileTooLargeError(size, self.max_bytes)
        if size == 0:
            raise EmptyInputError(f"File {filename!r} appears to be empty")

    def save(self, filename: str, payload: bytes) -> StoredUpload:
        """Validate and store a payload; return its reference."""
        original_name = Path(filename).name
        self.validate_upload(original_name, len(payload))

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        # Same name within one millisecond: bump the stamp until it is free
        stamp = int(time.time() * 1000)
        while True:
            reference = f"{stamp}-{original_name}"
            path = self.upload_dir / reference
            try:
                with open(path, 'xb') as f:
                    f.write(payload)
                break
            except FileExistsError:
                stamp += 1

        logger.info("Stored upload %s (%d bytes)", reference, len(payload))
        return StoredUpload(
            reference=reference,
            path=path,
            original_name=original_name,
            size_bytes=len(payload),
        )

    def resolve(self, reference: str) -> Path:
        """Map a reference back to the stored file.

        Raises:
            UnknownUploadError: reference escapes the upload directory or
                names no stored file
        """
        root = self.upload_dir.resolve()
        path = (root / reference).resolve()
        if path.parent != root or not path.is_file():
            raise UnknownUploadError(f"No stored upload named {reference!r}")
        return path

    @staticmethod
    def original_name(reference: str) -> str:
        """Strip the timestamp prefix added by save()."""
        prefix, sep, rest = reference.partition('-')
        if sep and prefix.isdigit():
            return rest
        return reference
