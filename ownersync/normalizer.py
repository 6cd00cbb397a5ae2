from typing import Any, Dict, Iterable, List, Optional
from pydantic import ValidationError

import config
from errors import ParseError
from helpers import parse_int
from models import TransferEvent

MAX_INT64 = 2 ** 63 - 1


def _address(raw: Dict[str, Any], field: str, default: Optional[str] = None) -> str:
    value = raw.get(field)
    if value is not None and not isinstance(value, str):
        raise ParseError(f"{field} is not an address: {value!r}", field=field, value=value)
    value = (value or "").strip()
    if value:
        return value
    if default is None:
        raise ParseError(f"transfer record has no {field!r} address", field=field, value=raw.get(field))
    return default


def _bounded(raw: Dict[str, Any], field: str) -> int:
    # stored as sqlite INTEGER
    value = parse_int(raw.get(field), field)
    if value > MAX_INT64:
        raise ParseError(f"{field} out of range: {value}", field=field, value=raw.get(field))
    return value


def normalize(raw: Dict[str, Any]) -> TransferEvent:
    """Decode one explorer row (string encoded numbers) into a TransferEvent."""
    if not isinstance(raw, dict):
        raise ParseError(f"transfer record is not an object: {raw!r}", value=raw)

    token_id     = parse_int(raw.get("tokenID"), "tokenID")
    block_number = _bounded(raw, "blockNumber")
    timestamp    = _bounded(raw, "timeStamp")

    to_   = _address(raw, "to")
    from_ = _address(raw, "from", default=config.ZERO_ADDR)

    try:
        return TransferEvent(
            token_id=token_id,
            from_addr=from_,
            to_addr=to_,
            block_number=block_number,
            timestamp=timestamp,
            tx_hash=raw.get("hash"),
        )
    except ValidationError as e:
        raise ParseError(f"invalid transfer record: {e.errors()[0]['msg']}", value=raw, original_error=e)


def normalize_page(rows: Iterable[Dict[str, Any]]) -> List[TransferEvent]:
    # all or nothing: the reconciler never sees a page with holes
    events = []
    for i, raw in enumerate(rows):
        try:
            events.append(normalize(raw))
        except ParseError as e:
            e.context.setdefault("row", i)
            raise
    return events
