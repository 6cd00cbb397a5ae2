"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# keep tests off the network, the real database and any local watchlist
os.environ.setdefault("DB_PATH", ":memory:")
os.environ.setdefault("CONTRACTS_PATH", "tests-no-contracts.json")
os.environ.setdefault("REQUEST_DELAY", "0")
os.environ.setdefault("FEED_STYLE", "transfers")
os.environ.setdefault("FEED_BASE_URL", "https://feed.test")

# modules import each other by bare name
sys.path.insert(0, str(Path(__file__).parent.parent / "ownersync"))

import pytest

from db import db, ensure_schema, SqlitePersister
from models import Page, PageToken


def transfer(token_id, to, block, ts=None, frm="0x0000000000000000000000000000000000000000"):
    """Raw feed row, string encoded like the explorer sends it."""
    return {
        "tokenID": str(token_id),
        "to": to,
        "from": frm,
        "blockNumber": str(block),
        "timeStamp": str(ts if ts is not None else 1_600_000_000 + block),
        "hash": f"0x{block:064x}",
    }


class HistoryFeed:
    """
    In-memory transfer feed over a fixed, block-ordered history.
    Pages by offset from the pass's start block, like the real feed.
    """

    def __init__(self, rows, page_size=2):
        self.rows = list(rows)
        self.page_size = page_size
        self.calls = []

    async def fetch_page(self, contract, from_block, page_token=None):
        cursor = page_token or PageToken(start_block=from_block, offset=0)
        self.calls.append((contract, from_block, cursor))
        visible = [r for r in self.rows if int(r["blockNumber"]) >= cursor.start_block]
        chunk = visible[cursor.offset:cursor.offset + self.page_size]
        has_more = len(chunk) >= self.page_size
        return Page(
            events=chunk,
            next_page_token=PageToken(start_block=cursor.start_block, offset=cursor.offset + len(chunk)) if has_more else None,
            has_more=has_more,
        )


class FakeResponse:
    def __init__(self, status=200, payload=None, text="", json_error=None):
        self.status = status
        self._payload = payload
        self._text = text
        self._json_error = json_error

    async def json(self, content_type="application/json"):
        if self._json_error is not None:
            raise self._json_error
        return self._payload

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession; replays scripted responses in order."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def get(self, url, params=None):
        self.calls.append((url, dict(params or {})))
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r

    async def close(self):
        self.closed = True


@pytest.fixture
def conn():
    c = db(":memory:")
    ensure_schema(c)
    yield c
    c.close()


@pytest.fixture
def store(conn):
    return SqlitePersister(conn)
