"""
Paginated readers for block-explorer NFT transfer feeds.

Every request is followed by a fixed sleep so a sync pass never exceeds
the explorer's documented request rate. Failures of a single page surface
as TransientFetchError; retrying is the caller's decision.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

import config
from errors import FeedError, ParseError, TransientFetchError
from helpers import parse_int
from models import Page, PageToken


logger = logging.getLogger(__name__)


class TransferFeed:
    """
    Generic offset/limit transfer feed:

        GET <base>/transfers?contract=<addr>&offset=<n>&limit=<k>&startblock=<b>
        -> {"result": [{tokenID, to, from, blockNumber, timeStamp}, ...]}
    """

    name = "transfers"

    def __init__(
        self,
        base_url: str,
        page_size: int = config.PAGE_SIZE,
        delay: float = config.REQUEST_DELAY,
        timeout: float = config.HTTP_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.delay = delay
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "TransferFeed":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={"Accept": "application/json"},
            )
            self._owns_session = True
        return self._session

    # ----- request shape (overridden per explorer) -----
    def request_for(self, contract: str, cursor: PageToken) -> Tuple[str, Dict[str, Any]]:
        return f"{self.base_url}/transfers", {
            "contract": contract,
            "offset": cursor.offset,
            "limit": self.page_size,
            "startblock": cursor.start_block,
        }

    def rows_from(self, contract: str, payload: Any) -> List[Any]:
        # only a list, empty or short, means end of history
        if not isinstance(payload, dict) or payload.get("result") is None:
            raise TransientFetchError(f"response has no result: {str(payload)[:200]}", contract=contract)
        result = payload["result"]
        if not isinstance(result, list):
            raise TransientFetchError(f"unexpected result: {str(result)[:200]}", contract=contract)
        return result

    def advance(self, contract: str, cursor: PageToken, rows: List[Any]) -> PageToken:
        return PageToken(start_block=cursor.start_block, offset=cursor.offset + len(rows))

    # ----- paging -----
    async def fetch_page(
        self,
        contract: str,
        from_block: int,
        page_token: Optional[PageToken] = None,
    ) -> Page:
        """
        Fetch one page of transfers for `contract`, ascending by block.

        `from_block` is the inclusive lower bound of the pass and is only
        used when `page_token` is None (first page).
        """
        if not contract:
            raise ValueError("contract address is required")
        cursor = page_token or PageToken(start_block=from_block, offset=0)
        url, params = self.request_for(contract, cursor)
        session = await self._get_session()

        try:
            async with session.get(url, params=params) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise TransientFetchError(
                        f"{self.name} feed returned HTTP {resp.status}",
                        contract=contract,
                        status_code=resp.status,
                        request_url=url,
                        context={"body": body[:200], "cursor": cursor.model_dump()},
                    )
                payload = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TransientFetchError(
                f"{self.name} feed request failed: {e}",
                contract=contract,
                request_url=url,
                original_error=e,
                context={"cursor": cursor.model_dump()},
            ) from e
        finally:
            # rate limit backpressure, success or not
            await asyncio.sleep(self.delay)

        rows = self.rows_from(contract, payload)
        has_more = len(rows) >= self.page_size
        logger.info(
            f"[feed] {contract} start={cursor.start_block} offset={cursor.offset} "
            f"rows={len(rows)} more={has_more}"
        )
        return Page(
            events=rows,
            next_page_token=self.advance(contract, cursor, rows) if has_more else None,
            has_more=has_more,
        )


class EtherscanFeed(TransferFeed):
    """
    Etherscan v2 `account/tokennfttx`, sorted ascending.

    The explorer refuses page * offset beyond its result window, so deep
    histories are walked by re-anchoring `startblock` on the last block seen.
    """

    name = "etherscan"

    def __init__(
        self,
        base_url: str = config.FEED_BASE_URL,
        api_key: str = config.ETHERSCAN_API_KEY,
        chain_id: int = config.CHAIN_ID,
        result_window: int = config.RESULT_WINDOW,
        **kwargs: Any,
    ) -> None:
        super().__init__(base_url, **kwargs)
        self.api_key = api_key
        self.chain_id = chain_id
        self.result_window = max(result_window, self.page_size)

    def request_for(self, contract: str, cursor: PageToken) -> Tuple[str, Dict[str, Any]]:
        params = {
            "chainid": str(self.chain_id),
            "module": "account",
            "action": "tokennfttx",
            "contractaddress": contract,
            "startblock": cursor.start_block,
            "page": cursor.offset // self.page_size + 1,
            "offset": self.page_size,
            "sort": "asc",
        }
        if self.api_key:
            params["apikey"] = self.api_key
        return self.base_url, params

    def rows_from(self, contract: str, payload: Any) -> List[Any]:
        if not isinstance(payload, dict):
            raise TransientFetchError("etherscan returned a non-object body", contract=contract)
        status = str(payload.get("status", "1"))
        message = str(payload.get("message", ""))
        result = payload.get("result")
        # {"status": "0", "message": "No transactions found", "result": []}
        if isinstance(result, list):
            return result
        if status == "0":
            raise TransientFetchError(
                f"etherscan error: {message} {str(result)[:200]}".strip(),
                contract=contract,
                context={"message": message},
            )
        return super().rows_from(contract, payload)

    def advance(self, contract: str, cursor: PageToken, rows: List[Any]) -> PageToken:
        nxt = super().advance(contract, cursor, rows)
        if nxt.offset + self.page_size <= self.result_window:
            return nxt
        last = rows[-1]
        if not isinstance(last, dict):
            raise ParseError(f"transfer record is not an object: {last!r}", value=last, contract=contract)
        last_block = parse_int(last.get("blockNumber"), "blockNumber")
        if last_block <= cursor.start_block:
            raise FeedError(
                f"result window of {self.result_window} exhausted inside block {cursor.start_block}",
                contract=contract,
            )
        logger.info(f"[feed] {contract} result window full; re-anchoring at block {last_block}")
        return PageToken(start_block=last_block, offset=0)


def make_feed(**overrides: Any) -> TransferFeed:
    """Build the feed selected by FEED_STYLE."""
    if config.FEED_STYLE == "etherscan":
        return EtherscanFeed(**overrides)
    base_url = overrides.pop("base_url", config.FEED_BASE_URL)
    return TransferFeed(base_url, **overrides)
