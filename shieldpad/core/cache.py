# shieldpad/core/cache.py
"""
ShieldPad Core: HandleCache

Remembers decrypted plaintexts per (contract, handle) so that re-opening an
unchanged balance does not cost another signature and decryption round trip.

There is no eviction and no TTL. A balance change produces a new handle, so
lookups for the current handle simply miss and the old entry is never read
again.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from .handles import normalize_handle


# =============================================================================
# Cache Entry
# =============================================================================

@dataclass
class CacheEntry:
    """Decrypted value for one (contract, handle) pair."""
    contract: str
    handle: str
    value: str
    cached_at: float = field(default_factory=time.time)


# =============================================================================
# HandleCache
# =============================================================================

class HandleCache:
    """Process-lifetime map of (contract, handle) -> decimal string."""

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    @staticmethod
    def key(contract: str, handle: str) -> str:
        """Cache key: contract and handle joined by a colon."""
        return f"{contract.strip().lower()}:{normalize_handle(handle)}"

    def get(self, contract: str, handle: str) -> Optional[str]:
        entry = self._entries.get(self.key(contract, handle))
        return entry.value if entry else None

    def put(self, contract: str, handle: str, value: str) -> None:
        self._entries[self.key(contract, handle)] = CacheEntry(
            contract=contract,
            handle=handle,
            value=value,
        )

    def __contains__(self, item) -> bool:
        contract, handle = item
        return self.key(contract, handle) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries.values()))
