"""Capability interface implemented by the record store adapters.

`BlockDAL` (SQLite) and `HostedBlockDAL` (hosted REST table) both satisfy
`BlockStore`; the application picks one at startup from `Settings.backend`.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Protocol, runtime_checkable

from models.block_record import BlockRecord


@runtime_checkable
class BlockStore(Protocol):
    async def create(self, fields: Mapping[str, Any]) -> BlockRecord:
        """Insert a block; raises UniqueViolationError on a duplicate code."""
        ...

    async def get_all(self) -> List[BlockRecord]:
        """All blocks, newest first."""
        ...

    async def get_by_id(self, block_id: int) -> Optional[BlockRecord]:
        ...

    async def update(self, block_id: int, fields: Mapping[str, Any]) -> BlockRecord:
        """Apply `fields` to an existing block; raises BlockNotFoundError if absent."""
        ...

    async def delete(self, block_id: int) -> bool:
        ...

    async def search(self, query: str) -> List[BlockRecord]:
        """Blocks whose code or material contains `query`, case-insensitively."""
        ...

    async def ping(self) -> None:
        """Raise StoreUnavailableError when the backend cannot be reached."""
        ...
