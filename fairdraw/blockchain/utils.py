import re
import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..errors import ProtocolError

logger = logging.getLogger(__name__)

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")

# Head height lives under ``block_header.raw_data.number`` on full nodes; some
# gateways flatten it to ``number``.
HEIGHT_PATHS: tuple[tuple[str, ...], ...] = (
    ("block_header", "raw_data", "number"),
    ("number",),
)
# Field names tried, in order, for a block's hash.
HASH_FIELDS: tuple[str, ...] = ("blockID", "block_id", "blockHash", "hash")


def dig(payload: Any, path: Sequence[str]) -> Any:
    """Follow ``path`` through nested mappings, returning ``None`` on any miss."""
    current = payload
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def extract_block_height(
    payload: Any, paths: Iterable[Sequence[str]] = HEIGHT_PATHS
) -> Optional[int]:
    """Return the first integer block height found along ``paths``.

    Booleans and floats are not heights.
    """
    for path in paths:
        value = dig(payload, path)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def extract_block_hash(
    payload: Any, fields: Iterable[str] = HASH_FIELDS
) -> Optional[str]:
    """Return the first non-empty block identifier among ``fields``."""
    if not isinstance(payload, Mapping):
        return None
    for field in fields:
        value = payload.get(field)
        if value:
            return str(value)
    return None


def validate_hex(value: Optional[str], *, what: str = "block hash") -> str:
    """Trim ``value`` and ensure it is a non-empty hexadecimal string.

    Raises
    ------
    ProtocolError
        If the value is missing, empty, or contains non-hex characters.
    """
    if value is None:
        raise ProtocolError(f"{what} is missing")
    cleaned = str(value).strip()
    if not _HEX_RE.match(cleaned):
        raise ProtocolError(f"{what} appears invalid (non-hex): {cleaned[:80]!r}")
    return cleaned
