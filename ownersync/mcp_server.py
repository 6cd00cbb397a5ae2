# mcp_server.py
from typing import Optional
from fastmcp import FastMCP
from pydantic import BaseModel, Field

import config
import queries
from db import db as open_db, ensure_schema, register_contract
from helpers import to_addr
from sync import sync_contract

db = open_db(config.DB_PATH)
ensure_schema(db)
mcp = FastMCP("nft-owner-sync", version="0.1.0")

# ---------- Typed input models ----------
class ContractIn(BaseModel):
    contract: str = Field(min_length=1)

class RegisterIn(BaseModel):
    contract: str = Field(min_length=1)
    name: Optional[str] = None

class TokensIn(BaseModel):
    contract: str = Field(min_length=1)
    limit: int = Field(100, ge=1, le=1000)
    offset: int = Field(0, ge=0)

class TokenIn(BaseModel):
    contract: str = Field(min_length=1)
    token_id: int = Field(ge=0)

class OwnerIn(BaseModel):
    owner: str = Field(min_length=1)
    contract: Optional[str] = None

class HoldersIn(BaseModel):
    contract: str = Field(min_length=1)
    limit: int = Field(10, ge=1, le=200)

# ---------- Tools ----------
@mcp.tool(name="contract_sync")
async def contract_sync_t(args: ContractIn) -> dict:
    """Run one ownership sync pass for a contract; returns success, tokens_updated, last_synced_block."""
    result = await sync_contract(db, args.contract)
    return result.model_dump()

@mcp.tool(name="contract_register")
def contract_register_t(args: RegisterIn) -> dict:
    """Start tracking a contract (empty state, checkpoint 0)."""
    addr = to_addr(args.contract)
    register_contract(db, addr, args.name or addr)
    return queries.contract_state(db, addr)

@mcp.tool(name="contracts_list")
def contracts_list_t() -> list:
    """Tracked contracts with their checkpoints."""
    return queries.list_contracts(db)

@mcp.tool(name="contract_state")
def contract_state_t(args: ContractIn) -> dict:
    """Checkpoint, token count and last update of a contract."""
    return queries.contract_state(db, args.contract)

@mcp.tool(name="contract_tokens")
def contract_tokens_t(args: TokensIn) -> dict:
    """Current owner of every token, ascending by token id."""
    return queries.contract_tokens(db, args.contract, args.limit, args.offset)

@mcp.tool(name="token_owner")
def token_owner_t(args: TokenIn) -> dict:
    """Current owner of one token."""
    return queries.token_owner(db, args.contract, args.token_id)

@mcp.tool(name="owner_tokens")
def owner_tokens_t(args: OwnerIn) -> list:
    """Tokens an address currently holds."""
    return queries.owner_tokens(db, args.owner, args.contract)

@mcp.tool(name="contract_holders")
def contract_holders_t(args: HoldersIn) -> dict:
    """Unique holders and top owners of a contract."""
    uh = queries.unique_holders(db, args.contract)
    return {
        "contract": args.contract,
        "unique_holders": uh["unique_holders"],
        "top_owners": queries.top_owners(db, args.contract, args.limit),
    }
