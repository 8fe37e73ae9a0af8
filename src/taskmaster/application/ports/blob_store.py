from __future__ import annotations
from typing import Protocol, Sequence
from taskmaster.domain.errors import DeleteError

class BlobStore(Protocol):
    async def upload(self, *, owner_id: str, payload: bytes, content_type: str) -> str: ...
    def resolve_public_ref(self, key: str) -> str: ...
    async def delete(self, refs: Sequence[str]) -> dict[str, DeleteError | None]: ...
