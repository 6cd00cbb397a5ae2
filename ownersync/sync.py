"""
One synchronization pass per contract.

    load state -> fetch page -> normalize -> reconcile -> (more pages?) -> save

Pages are folded strictly in the order they are fetched and the store is
written once, after the last page. A failed or cancelled pass leaves the
previously saved state as the system of record.
"""

import asyncio
import logging
from typing import Optional, Set

import config
from db import SqlitePersister
from errors import SyncError, TransientFetchError
from feed import TransferFeed, make_feed
from helpers import to_addr
from models import OwnershipState, Page, PageToken, SyncResult
from normalizer import normalize_page
from reconciler import reconcile, touched


logger = logging.getLogger(__name__)


class ContractSyncer:
    """Drives sync passes for contracts against one feed and one store."""

    def __init__(
        self,
        feed: TransferFeed,
        store,
        retries: int = config.FETCH_RETRIES,
        retry_delay: float = config.REQUEST_DELAY,
    ) -> None:
        self.feed = feed
        self.store = store
        self.retries = max(0, retries)
        self.retry_delay = retry_delay

    async def _fetch_page(
        self,
        contract: str,
        from_block: int,
        page_token: Optional[PageToken],
    ) -> Page:
        """Fetch one page, retrying the same cursor on transient failures."""
        attempts = self.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return await self.feed.fetch_page(contract, from_block, page_token)
            except TransientFetchError as e:
                if attempt == attempts:
                    raise
                logger.warning(
                    f"[sync] {contract} page fetch failed "
                    f"(attempt {attempt}/{attempts}), retrying in {self.retry_delay}s: {e}"
                )
                await asyncio.sleep(self.retry_delay)

    async def sync(self, contract: str) -> SyncResult:
        """
        Bring the stored ownership of `contract` up to the feed's head.

        Never raises for feed, parse, or store failures; those come back as
        a SyncResult with success=False and the untouched checkpoint.
        """
        key = to_addr(contract) or ""
        if not key:
            return SyncResult(contract_address="", success=False, error="contract address is required")

        checkpoint = 0
        pages = 0
        changed: Set[int] = set()
        try:
            # Loading
            state = self.store.load(key)
            if state is None:
                logger.info(f"[sync] {key} has no stored state; starting from block 0")
                state = OwnershipState(contract_address=key)
            checkpoint = state.last_synced_block

            # Fetching / Reconciling
            # the boundary block is read again; re-applying it is a no-op per token
            page_token = None
            while True:
                page = await self._fetch_page(key, checkpoint, page_token)
                events = normalize_page(page.events)
                state = reconcile(state, events)
                changed |= touched(events)
                pages += 1
                if not page.has_more:
                    break
                page_token = page.next_page_token

            # Persisting
            self.store.save(state)

        except SyncError as e:
            logger.error(f"[sync] {key} failed after {pages} page(s): {e.to_dict()}")
            return SyncResult(
                contract_address=key,
                success=False,
                last_synced_block=checkpoint,
                pages=pages,
                error=str(e),
            )

        logger.info(
            f"[sync] {key} done: pages={pages} tokens_updated={len(changed)} "
            f"block {checkpoint} -> {state.last_synced_block}"
        )
        return SyncResult(
            contract_address=key,
            success=True,
            tokens_updated=len(changed),
            last_synced_block=state.last_synced_block,
            pages=pages,
        )


async def sync_contract(conn, contract: str, feed: Optional[TransferFeed] = None) -> SyncResult:
    """Run one pass with the configured feed unless one is given."""
    if feed is not None:
        return await ContractSyncer(feed, SqlitePersister(conn)).sync(contract)
    async with make_feed() as own_feed:
        return await ContractSyncer(own_feed, SqlitePersister(conn)).sync(contract)
