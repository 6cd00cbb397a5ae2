from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


# ---------- feed / events ----------
class TransferEvent(BaseModel):
    """One on-chain transfer of a token; `to_addr` is the new owner."""
    model_config = ConfigDict(frozen=True)

    token_id: int = Field(ge=0)
    from_addr: str
    to_addr: str
    block_number: int = Field(ge=0)
    timestamp: int
    tx_hash: Optional[str] = None

class PageToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_block: int = Field(ge=0)
    offset: int = Field(0, ge=0)

class Page(BaseModel):
    events: List[Any] = Field(default_factory=list)
    next_page_token: Optional[PageToken] = None
    has_more: bool = False


# ---------- ownership ----------
class Token(BaseModel):
    id: int
    owner: str
    last_sale_timestamp: int = 0

class OwnershipState(BaseModel):
    """
    Reconstructed ownership of one contract as of `last_synced_block`.
    `updated` is the timestamp of the transfer that last raised the checkpoint.
    """
    contract_address: str
    last_synced_block: int = Field(0, ge=0)
    updated: int = 0
    tokens: Dict[int, Token] = Field(default_factory=dict)

    @property
    def num_tokens(self) -> int:
        return len(self.tokens)

    def sorted_tokens(self) -> List[Token]:
        return [self.tokens[k] for k in sorted(self.tokens)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contract_address": self.contract_address,
            "last_synced_block": self.last_synced_block,
            "updated": self.updated,
            "num_tokens": self.num_tokens,
            "tokens": [t.model_dump() for t in self.sorted_tokens()],
        }


# ---------- sync outcome ----------
class SyncResult(BaseModel):
    contract_address: str
    success: bool
    tokens_updated: int = 0
    last_synced_block: int = 0
    pages: int = 0
    error: Optional[str] = None
