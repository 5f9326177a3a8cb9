# shieldpad/core/handles.py
"""
ShieldPad Core: Ciphertext Handle Helpers

A handle is an opaque 32-byte reference to an encrypted value, carried
around as a 0x-prefixed hex string. The all-zero handle means "nothing
recorded yet" and stands for plaintext zero.
"""

from __future__ import annotations

from typing import Optional


# =============================================================================
# Constants
# =============================================================================

HANDLE_SIZE = 32
ZERO_HANDLE = "0x" + "00" * HANDLE_SIZE

EMPTY_MARK = "—"
ELLIPSIS = "…"


# =============================================================================
# Helpers
# =============================================================================

def normalize_handle(handle: str) -> str:
    """Lower-case, 0x-prefixed form used for comparisons and keys."""
    h = handle.strip().lower()
    if not h.startswith("0x"):
        h = "0x" + h
    return h


def is_zero_handle(handle: Optional[str]) -> bool:
    """True for the all-zero sentinel."""
    if not handle:
        return False
    body = normalize_handle(handle)[2:]
    return len(body) > 0 and set(body) == {"0"}


def shorten_handle(handle: Optional[str]) -> str:
    """Render a handle as 0x1234…abcd, or a dash when nothing is recorded."""
    if not handle or is_zero_handle(handle):
        return EMPTY_MARK
    return f"{handle[:6]}{ELLIPSIS}{handle[-4:]}"


def handle_from_bytes(raw: bytes) -> str:
    """Encode raw handle bytes."""
    if len(raw) != HANDLE_SIZE:
        raise ValueError(f"Handle must be {HANDLE_SIZE} bytes, got {len(raw)}")
    return "0x" + raw.hex()
