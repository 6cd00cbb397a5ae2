import logging
from typing import Iterable, Set

from models import OwnershipState, Token, TransferEvent

logger = logging.getLogger(__name__)


def reconcile(state: OwnershipState, events: Iterable[TransferEvent]) -> OwnershipState:
    """
    Fold transfers, in the order given, into a new OwnershipState.

    The last transfer seen for a token wins. Events are not re-sorted:
    correctness relies on the feed delivering them in ascending block order.
    The checkpoint only moves forward. `state` is left untouched.
    """
    tokens     = dict(state.tokens)
    last_block = state.last_synced_block
    updated    = state.updated
    stale      = 0

    for ev in events:
        if ev.block_number < state.last_synced_block:
            stale += 1
        tokens[ev.token_id] = Token(
            id=ev.token_id,
            owner=ev.to_addr,
            last_sale_timestamp=ev.timestamp,
        )
        if ev.block_number > last_block:
            last_block = ev.block_number
            updated = ev.timestamp

    if stale:
        logger.warning(
            f"[reconcile] {state.contract_address}: applied {stale} event(s) "
            f"below checkpoint {state.last_synced_block}"
        )

    return OwnershipState(
        contract_address=state.contract_address,
        last_synced_block=last_block,
        updated=updated,
        tokens=tokens,
    )


def touched(events: Iterable[TransferEvent]) -> Set[int]:
    return {ev.token_id for ev in events}
