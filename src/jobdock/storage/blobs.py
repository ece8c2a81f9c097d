"""Blob storage abstraction for job archive snapshots.

Archive blobs are addressed by deterministic keys
(``archives/jobs/{tenant_id}/{job_id}.json``) so a job's archive can be
found again without storing a reference on the row.
"""

import asyncio
from pathlib import Path
from typing import NamedTuple, Protocol


class BlobRef(NamedTuple):
    """Reference to a stored blob."""

    scheme: str  # 'local'; remote backends use their own scheme
    key: str  # 'archives/jobs/ten_1/job_1.json'

    @classmethod
    def parse(cls, storage_ref: str) -> "BlobRef":
        """Parse 'scheme://key' into a BlobRef.

        Raises:
            ValueError: If storage_ref has no scheme separator.
        """
        if "://" not in storage_ref:
            raise ValueError(f"Invalid storage_ref format (missing '://'): {storage_ref}")
        scheme, key = storage_ref.split("://", 1)
        return cls(scheme=scheme, key=key)

    def to_ref(self) -> str:
        return f"{self.scheme}://{self.key}"


class BlobNotFoundError(Exception):
    """Raised when a blob cannot be found in storage."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Blob not found: {key}")


class BlobStore(Protocol):
    """Protocol for blob storage backends."""

    async def put(self, key: str, data: bytes, *, content_type: str) -> str:
        """Store ``data`` under ``key`` (overwriting), return the storage ref."""
        ...

    async def get(self, key: str) -> bytes:
        """Read a blob back. Raises BlobNotFoundError if missing."""
        ...

    async def delete(self, key: str) -> None:
        """Delete a blob. Raises BlobNotFoundError if missing."""
        ...

    async def exists(self, key: str) -> bool:
        ...


class LocalBlobStore:
    """Filesystem-backed blob store.

    File I/O runs in a worker thread so that callers can bound a write with
    ``asyncio.wait_for``.

    Args:
        base_dir: Root directory for blob storage
    """

    def __init__(self, base_dir: Path | str):
        self.base_dir = Path(base_dir).resolve()
        self.scheme = "local"

    def _key_to_path(self, key: str) -> Path:
        """Resolve a key below base_dir.

        Raises:
            ValueError: If the key escapes base_dir.
        """
        if "://" in key:
            ref = BlobRef.parse(key)
            if ref.scheme != self.scheme:
                raise ValueError(f"Storage scheme mismatch: expected '{self.scheme}', got '{ref.scheme}'")
            key = ref.key

        resolved_path = (self.base_dir / key).resolve()
        try:
            resolved_path.relative_to(self.base_dir)
        except ValueError as e:
            raise ValueError(f"Path traversal attempt detected: {key}") from e
        if resolved_path == self.base_dir:
            raise ValueError(f"Empty blob key: {key!r}")
        return resolved_path

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_bytes(data)
        tmp_path.replace(path)

    async def put(self, key: str, data: bytes, *, content_type: str = "application/json") -> str:
        path = self._key_to_path(key)
        await asyncio.to_thread(self._write, path, data)
        return BlobRef(scheme=self.scheme, key=path.relative_to(self.base_dir).as_posix()).to_ref()

    async def get(self, key: str) -> bytes:
        path = self._key_to_path(key)
        if not path.exists():
            raise BlobNotFoundError(key)
        return await asyncio.to_thread(path.read_bytes)

    async def delete(self, key: str) -> None:
        path = self._key_to_path(key)
        if not path.exists():
            raise BlobNotFoundError(key)
        await asyncio.to_thread(path.unlink)

    async def exists(self, key: str) -> bool:
        try:
            return self._key_to_path(key).exists()
        except ValueError:
            # Wrong scheme or traversal: not in this store
            return False
