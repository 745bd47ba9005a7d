"""Input checks applied to address text before any parsing work."""

from __future__ import annotations

from typing import Optional

from jp_address_api.config import MAX_ADDRESS_LENGTH

# CJK symbols/punctuation, kana and the unified ideograph block.
CJK_RANGE_START = 0x3000
CJK_RANGE_END = 0x9FFF


def _is_address_char(char: str) -> bool:
    code = ord(char)
    return code < 0x80 or CJK_RANGE_START <= code <= CJK_RANGE_END


def validate_address(text: Optional[str], *, max_length: int = MAX_ADDRESS_LENGTH) -> Optional[str]:
    """
    Check that ``text`` is worth handing to the parser.

    Returns:
        None when the address is acceptable, otherwise the rejection reason.
        Rules are applied in order and the first failure wins.
    """
    trimmed = (text or "").strip()
    if not trimmed:
        return "Address cannot be empty"
    # Length is counted in code points, not encoded bytes.
    if len(trimmed) > max_length:
        return f"Address too long (max {max_length} characters)"
    if not any(_is_address_char(char) for char in trimmed):
        return "Invalid address format"
    return None
