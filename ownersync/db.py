import sqlite3, time, logging
from typing import Iterable, List, Optional
from web3 import Web3

import config
from errors import PersistenceError
from helpers import to_addr
from models import OwnershipState, Token

logger = logging.getLogger(__name__)

SCHEMA = """
-- one row per tracked contract; the checkpoint lives here
CREATE TABLE IF NOT EXISTS contracts (
  address           TEXT PRIMARY KEY,
  name              TEXT,
  type              TEXT,
  last_synced_block INTEGER NOT NULL DEFAULT 0,
  num_tokens        INTEGER NOT NULL DEFAULT 0,
  updated           INTEGER NOT NULL DEFAULT 0,   -- ts of the transfer that set the checkpoint
  synced_at         INTEGER                       -- wall clock of the last successful save
);

-- current owner per token; rewritten as a whole on every save
CREATE TABLE IF NOT EXISTS tokens (
  contract  TEXT NOT NULL,
  token_id  TEXT NOT NULL,            -- uint256, decimal string
  owner     TEXT NOT NULL,
  last_sale INTEGER NOT NULL DEFAULT 0,
  PRIMARY KEY (contract, token_id)
);
CREATE INDEX IF NOT EXISTS idx_tokens_owner ON tokens(owner);
"""

def db(path: Optional[str] = None):
    conn = sqlite3.connect(path or config.DB_PATH, isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA temp_store=MEMORY;")
    return conn

def ensure_schema(conn: sqlite3.Connection):
    conn.executescript(SCHEMA)

# ---------- contracts ----------
def register_contract(conn, address: str, name: Optional[str] = None, type: str = "erc721"):
    """Start tracking a contract with an empty state (checkpoint 0)."""
    conn.execute("""
        INSERT INTO contracts(address, name, type)
        VALUES(?,?,?)
        ON CONFLICT(address) DO UPDATE SET
          name=COALESCE(excluded.name, contracts.name),
          type=excluded.type
    """, (address, name, type))

def seed_contracts(conn, contracts: Iterable[dict]):
    """Register the erc721 entries of the watchlist; invalid addresses are skipped."""
    for c in contracts:
        if (c.get("type") or "erc721").lower() != "erc721":
            continue
        addr = to_addr(c.get("address"))
        if not addr or not Web3.is_address(addr):
            continue
        register_contract(conn, addr, c.get("name") or addr)

def tracked_contracts(conn, skip: Iterable[str] = ()) -> List[str]:
    skip = {s.lower() for s in skip}
    rows = conn.execute("SELECT address FROM contracts ORDER BY address").fetchall()
    return [r[0] for r in rows if r[0].lower() not in skip]

# ---------- ownership state ----------
def load_state(conn, address: str) -> Optional[OwnershipState]:
    row = conn.execute("""
        SELECT address, last_synced_block, updated FROM contracts WHERE address=?
    """, (address,)).fetchone()
    if row is None:
        return None
    tokens = {}
    for token_id, owner, last_sale in conn.execute(
        "SELECT token_id, owner, last_sale FROM tokens WHERE contract=?", (address,)
    ):
        tid = int(token_id)
        tokens[tid] = Token(id=tid, owner=owner, last_sale_timestamp=last_sale)
    return OwnershipState(
        contract_address=row[0],
        last_synced_block=row[1],
        updated=row[2],
        tokens=tokens,
    )

def save_state(conn, state: OwnershipState):
    """Replace the stored state of a contract in one transaction."""
    addr = state.contract_address
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            conn.execute("""
                INSERT INTO contracts(address, name, type, last_synced_block, num_tokens, updated, synced_at)
                VALUES(?,?,?,?,?,?,?)
                ON CONFLICT(address) DO UPDATE SET
                  last_synced_block=excluded.last_synced_block,
                  num_tokens=excluded.num_tokens,
                  updated=excluded.updated,
                  synced_at=excluded.synced_at
            """, (addr, addr, "erc721", state.last_synced_block, state.num_tokens,
                  state.updated, int(time.time())))
            conn.execute("DELETE FROM tokens WHERE contract=?", (addr,))
            conn.executemany("""
                INSERT INTO tokens(contract, token_id, owner, last_sale) VALUES (?,?,?,?)
            """, [(addr, str(t.id), t.owner, t.last_sale_timestamp) for t in state.sorted_tokens()])
            conn.execute("COMMIT")
        except BaseException:
            conn.execute("ROLLBACK")
            raise
    except (sqlite3.Error, OverflowError) as e:
        raise PersistenceError(f"failed to save state: {e}", contract=addr, original_error=e) from e
    logger.info(f"[db] saved {addr} block={state.last_synced_block} tokens={state.num_tokens}")


class SqlitePersister:
    """Key-value view of the ownership store, keyed by contract address."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def load(self, address: str) -> Optional[OwnershipState]:
        try:
            return load_state(self.conn, address)
        except sqlite3.Error as e:
            raise PersistenceError(f"failed to load state: {e}", contract=address, original_error=e) from e

    def save(self, state: OwnershipState):
        save_state(self.conn, state)
