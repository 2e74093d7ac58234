"""File I/O for uploaded statement files."""

from pathlib import Path

from fastapi import UploadFile

from finance_ledger.core.utils import ensure_dir, get_logger

CHUNK_SIZE = 64 * 1024

# Tried in order before the latin-1 fallback, which accepts any byte.
TEXT_ENCODINGS = ("utf-8-sig", "cp1252")
FALLBACK_ENCODING = "latin-1"

logger = get_logger("finance-ledger.files")


class UploadTooLargeError(ValueError):
    """The uploaded file exceeds the configured size limit."""


class FileService:
    """Service for storing uploaded files on local disk until their job has read them."""

    def __init__(self, upload_dir: str | Path) -> None:
        """Initialize FileService rooted at the upload directory."""
        self.root = Path(upload_dir)
        ensure_dir(self.root)

    def path_for(self, key: str) -> Path:
        """Return the on-disk path for a stored file key."""
        return self.root / f"{key}.csv"

    def save_file(self, key: str, data: bytes) -> Path:
        """Save raw bytes under the given key."""
        path = self.path_for(key)
        path.write_bytes(data)
        return path

    def get_text(self, path: Path) -> str:
        """Read a stored upload as text.

        UTF-8 (with or without a byte-order mark) is tried first; bank exports saved by spreadsheet tools on Windows
        are often cp1252, which is tried next, with latin-1 as the last resort.
        """
        data = path.read_bytes()
        for encoding in TEXT_ENCODINGS:
            try:
                text = data.decode(encoding)
            except UnicodeDecodeError:
                continue
            if encoding != TEXT_ENCODINGS[0]:
                logger.warning(f"Upload {path.name} is not UTF-8; read it as {encoding}")
            return text
        logger.warning(f"Upload {path.name} is not UTF-8 or cp1252; read it as {FALLBACK_ENCODING}")
        return data.decode(FALLBACK_ENCODING)

    def delete_file(self, path: Path) -> None:
        """Remove a stored upload; a missing file is not an error."""
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.warning(f"Could not remove upload {path}")


def save_upload_file(file: UploadFile, file_service: FileService, key: str, max_size: int) -> Path:
    """Copy an uploaded file to disk under ``key``, enforcing the size limit."""
    chunks: list[bytes] = []
    size = 0
    while chunk := file.file.read(CHUNK_SIZE):
        size += len(chunk)
        if size > max_size:
            msg = f"File exceeds the {max_size} byte upload limit"
            raise UploadTooLargeError(msg)
        chunks.append(chunk)
    return file_service.save_file(key, b"".join(chunks))
