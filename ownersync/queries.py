# read-only views over the stored ownership snapshots
from typing import Any, Dict, List, Optional

from db import load_state


def row_to_dict(row) -> Dict[str, Any]:
    return {k: row[k] for k in row.keys()}

def list_contracts(conn) -> List[Dict[str, Any]]:
    rows = conn.execute("""
        SELECT address, name, type, last_synced_block, num_tokens, updated, synced_at
        FROM contracts ORDER BY address
    """).fetchall()
    return [row_to_dict(r) for r in rows]

def contract_state(conn, contract: str) -> Dict[str, Any]:
    row = conn.execute("""
        SELECT address, name, type, last_synced_block, num_tokens, updated, synced_at
        FROM contracts WHERE lower(address)=lower(?)
    """, (contract,)).fetchone()
    if not row:
        return {"error": f"contract {contract} not tracked"}
    return row_to_dict(row)

def contract_tokens(conn, contract: str, limit: int = 100, offset: int = 0) -> Dict[str, Any]:
    """Tokens of a contract ascending by id, paged."""
    row = conn.execute("SELECT address FROM contracts WHERE lower(address)=lower(?)", (contract,)).fetchone()
    if not row:
        return {"error": f"contract {contract} not tracked"}
    state = load_state(conn, row["address"])
    tokens = state.sorted_tokens()
    limit = max(1, min(limit, 1000))
    offset = max(0, offset)
    return {
        "contract": state.contract_address,
        "last_synced_block": state.last_synced_block,
        "total": len(tokens),
        "tokens": [t.model_dump() for t in tokens[offset:offset + limit]],
    }

def token_owner(conn, contract: str, token_id: int) -> Dict[str, Any]:
    row = conn.execute("""
        SELECT contract, token_id, owner, last_sale
        FROM tokens WHERE lower(contract)=lower(?) AND token_id=?
    """, (contract, str(token_id))).fetchone()
    if not row:
        return {"error": f"token {token_id} of {contract} not found"}
    out = row_to_dict(row)
    out["token_id"] = int(out["token_id"])
    return out

def owner_tokens(conn, owner: str, contract: Optional[str] = None) -> List[Dict[str, Any]]:
    """Tokens currently held by `owner`, optionally within one contract."""
    if contract:
        rows = conn.execute("""
            SELECT contract, token_id, last_sale FROM tokens
            WHERE lower(owner)=lower(?) AND lower(contract)=lower(?)
        """, (owner, contract)).fetchall()
    else:
        rows = conn.execute("""
            SELECT contract, token_id, last_sale FROM tokens
            WHERE lower(owner)=lower(?)
        """, (owner,)).fetchall()
    out = [{"contract": r["contract"], "token_id": int(r["token_id"]), "last_sale": r["last_sale"]} for r in rows]
    out.sort(key=lambda t: (t["contract"], t["token_id"]))
    return out

def unique_holders(conn, contract: str) -> Dict[str, Any]:
    row = conn.execute("""
        SELECT COUNT(DISTINCT owner) AS unique_holders
        FROM tokens
        WHERE lower(contract)=lower(?)
    """, (contract,)).fetchone()
    return {"contract": contract, "unique_holders": row["unique_holders"] if row else 0}

def top_owners(conn, contract: str, limit: int = 10) -> List[Dict[str, Any]]:
    limit = max(1, min(limit, 200))
    rows = conn.execute("""
        SELECT owner, COUNT(*) AS tokens
        FROM tokens
        WHERE lower(contract)=lower(?)
        GROUP BY owner
        ORDER BY tokens DESC, owner ASC
        LIMIT ?
    """, (contract, limit)).fetchall()
    return [row_to_dict(r) for r in rows]
