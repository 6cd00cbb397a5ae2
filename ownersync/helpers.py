from web3 import Web3

from errors import ParseError

# ---------------- helpers ----------------
def to_addr(x):
    """Checksum a valid hex address; anything else is returned stripped."""
    if x is None: return None
    s = str(x).strip()
    return Web3.to_checksum_address(s) if Web3.is_address(s) else s

def parse_int(x, field: str) -> int:
    """
    Decode an integer field of a feed record.
    Explorers send decimal strings; 0x-prefixed hex is accepted too.
    """
    if isinstance(x, bool):
        raise ParseError(f"{field} is not an integer: {x!r}", field=field, value=x)
    if isinstance(x, int): return x
    if x is None:
        raise ParseError(f"{field} is missing", field=field, value=x)
    s = str(x).strip()
    try:
        return int(s, 16) if s.lower().startswith("0x") else int(s, 10)
    except ValueError as e:
        raise ParseError(f"{field} is not an integer: {x!r}", field=field, value=x, original_error=e)
