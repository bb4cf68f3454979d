"""Boundary Protocols: contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - Object storage is reached only through ObjectStorageGateway
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Gateway failures are StorageUnavailableError with a retryable flag; the
      gateway itself never retries (MediaIngestor owns the retry policy)
"""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class UploadResult:
    """What the object store hands back for a stored blob."""
    url: str
    public_id: str | None = None


class ObjectStorageGateway(Protocol):
    """Remote binary-object store. Implemented by infrastructure/."""
    async def upload(
        self, data: bytes, folder: str, content_type: str,
    ) -> UploadResult: ...


class ByteSource(Protocol):
    """Anything readable in chunks, e.g. starlette's UploadFile."""
    async def read(self, size: int = -1) -> bytes: ...
