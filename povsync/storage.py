"""Document blob storage: path-addressable and backed by the local filesystem.

Blobs live at ``<root>/<bucket>/<path>``. In production the root can be a
mounted object-store volume; the interface (upload/retrieve/remove) stays
the same.
"""

import logging
from pathlib import Path, PurePosixPath
from uuid import UUID

logger = logging.getLogger(__name__)


class BlobStorage:
    """Local filesystem-backed blob store used for engagement documents."""

    def __init__(self, storage_root: str) -> None:
        self._root = Path(storage_root)
        self._root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def document_path(engagement_id: UUID, document_id: UUID, filename: str) -> str:
        """Storage path for a document: engagement_id/document_id/filename.

        Only the last path component of ``filename`` is kept; names that
        would address a directory (empty, ``.``, ``..``) become "document".
        """
        safe_name = PurePosixPath(filename).name
        if safe_name in {"", ".", ".."}:
            safe_name = "document"
        return f"{engagement_id}/{document_id}/{safe_name}"

    def _resolve(self, bucket: str, path: str) -> Path:
        target = (self._root / bucket / path).resolve()
        if not target.is_relative_to(self._root.resolve()):
            msg = f"Storage path escapes the storage root: {path}"
            raise ValueError(msg)
        return target

    def upload(self, *, bucket: str, path: str, content: bytes) -> int:
        """Write ``content`` to ``bucket/path``; returns the size in bytes.

        Raises:
            ValueError: If content is empty.
        """
        if len(content) == 0:
            msg = "Document content must not be empty."
            raise ValueError(msg)
        dest = self._resolve(bucket, path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(content)
        logger.debug("Blob written bucket=%s path=%s size=%d", bucket, path, len(content))
        return len(content)

    def retrieve(self, *, bucket: str, path: str) -> bytes:
        """Read stored bytes.

        Raises:
            FileNotFoundError: If nothing is stored at ``bucket/path``.
        """
        source = self._resolve(bucket, path)
        if not source.exists():
            msg = f"Blob not found at {bucket}/{path}"
            raise FileNotFoundError(msg)
        return source.read_bytes()

    def remove(self, *, bucket: str, path: str) -> bool:
        """Delete a blob; returns False if it was already gone."""
        target = self._resolve(bucket, path)
        if not target.exists():
            return False
        target.unlink()
        logger.debug("Blob removed bucket=%s path=%s", bucket, path)
        return True
