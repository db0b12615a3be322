"""Bucketed blob storage for avatars and task attachments.

Blobs are addressed by (bucket, path) where path is an opaque, slash
separated string chosen by the caller. The local backend keeps each bucket
as a directory under the storage root.
"""
from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from .exceptions import StorageError

logger = logging.getLogger(__name__)

AVATARS_BUCKET = "avatars"
ATTACHMENTS_BUCKET = "task_attachments"
BUCKETS = (AVATARS_BUCKET, ATTACHMENTS_BUCKET)


def owned_by(user_id: str, path: str) -> bool:
    """Objects live under a directory named after their owner: {user_id}/..."""
    head, sep, rest = path.partition("/")
    return bool(user_id) and bool(sep) and bool(rest) and head == user_id


class ObjectStorage:
    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        for bucket in BUCKETS:
            (self._root / bucket).mkdir(parents=True, exist_ok=True)

    def _resolve(self, bucket: str, path: str) -> Path:
        if bucket not in BUCKETS:
            raise StorageError(f"Unknown bucket: {bucket}")
        rel = PurePosixPath(path)
        if not path or rel.is_absolute() or ".." in rel.parts:
            raise StorageError(f"Invalid object path: {path!r}")
        return self._root / bucket / Path(*rel.parts)

    def upload(self, bucket: str, path: str, data: bytes) -> str:
        """Store a blob. Existing objects are never overwritten."""
        target = self._resolve(bucket, path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "xb") as f:
                f.write(data)
        except FileExistsError as e:
            raise StorageError(f"Object already exists: {bucket}/{path}") from e
        except OSError as e:
            raise StorageError(f"Upload failed for {bucket}/{path}: {e}") from e
        logger.debug("Uploaded %s/%s (%d bytes)", bucket, path, len(data))
        return path

    def download(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        try:
            return target.read_bytes()
        except OSError as e:
            raise StorageError(f"Download failed for {bucket}/{path}: {e}") from e

    def exists(self, bucket: str, path: str) -> bool:
        try:
            return self._resolve(bucket, path).is_file()
        except StorageError:
            return False
