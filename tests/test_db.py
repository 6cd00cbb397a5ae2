import pytest
from web3 import Web3

from db import (
    db, load_state, register_contract, save_state, seed_contracts, tracked_contracts, SqlitePersister,
)
from errors import PersistenceError
from models import OwnershipState, Token


BAYC = Web3.to_checksum_address("0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d")


def state_with(contract, block, owners, updated=0):
    return OwnershipState(
        contract_address=contract,
        last_synced_block=block,
        updated=updated,
        tokens={
            i: Token(id=i, owner=o, last_sale_timestamp=100 + n)
            for n, (i, o) in enumerate(owners.items())
        },
    )


def test_unknown_contract_loads_as_none(conn):
    assert load_state(conn, "0xCAFE") is None


def test_registered_contract_starts_empty(conn):
    register_contract(conn, "0xCAFE", "cafe")
    state = load_state(conn, "0xCAFE")
    assert state == OwnershipState(contract_address="0xCAFE")


def test_register_keeps_existing_checkpoint(conn):
    save_state(conn, state_with("0xCAFE", 9, {1: "0xA"}))
    register_contract(conn, "0xCAFE", "renamed")
    assert load_state(conn, "0xCAFE").last_synced_block == 9
    assert conn.execute("SELECT name FROM contracts").fetchone()[0] == "renamed"


def test_save_then_load(conn):
    big = 2 ** 200
    state = state_with("0xCAFE", 7, {3: "0xB", 1: "0xA", big: "0xC"}, updated=555)
    save_state(conn, state)
    assert load_state(conn, "0xCAFE") == state
    row = conn.execute("SELECT num_tokens, synced_at FROM contracts WHERE address='0xCAFE'").fetchone()
    assert row[0] == 3
    assert row[1] is not None


def test_save_replaces_previous_state(conn):
    save_state(conn, state_with("0xCAFE", 5, {1: "0xA", 2: "0xA"}))
    save_state(conn, state_with("0xCAFE", 8, {1: "0xB"}))
    state = load_state(conn, "0xCAFE")
    assert state.last_synced_block == 8
    assert list(state.tokens) == [1]


def test_contracts_are_independent(conn):
    save_state(conn, state_with("0xCAFE", 5, {1: "0xA"}))
    save_state(conn, state_with("0xBEEF", 9, {1: "0xB"}))
    assert load_state(conn, "0xCAFE").tokens[1].owner == "0xA"
    assert load_state(conn, "0xBEEF").tokens[1].owner == "0xB"


def test_failed_save_leaves_previous_state(conn):
    before = state_with("0xCAFE", 5, {1: "0xA", 2: "0xA"})
    save_state(conn, before)
    conn.execute("""
        CREATE TRIGGER fail_insert BEFORE INSERT ON tokens
        WHEN NEW.owner = '0xBOOM'
        BEGIN SELECT RAISE(ABORT, 'boom'); END;
    """)
    with pytest.raises(PersistenceError):
        save_state(conn, state_with("0xCAFE", 9, {1: "0xB", 2: "0xBOOM"}))
    assert load_state(conn, "0xCAFE") == before
    assert not conn.in_transaction


def test_timestamp_beyond_sqlite_integer_is_a_persistence_error(conn):
    before = state_with("0xCAFE", 5, {1: "0xA"})
    save_state(conn, before)
    after = state_with("0xCAFE", 9, {1: "0xB"})
    after.tokens[1].last_sale_timestamp = 2 ** 63
    with pytest.raises(PersistenceError) as exc:
        save_state(conn, after)
    assert isinstance(exc.value.original_error, OverflowError)
    assert load_state(conn, "0xCAFE") == before
    assert not conn.in_transaction


def test_persister_wraps_load_errors():
    c = db(":memory:")
    c.close()
    with pytest.raises(PersistenceError):
        SqlitePersister(c).load("0xCAFE")


def test_persister_round_trip(store):
    state = state_with("0xCAFE", 3, {1: "0xA"})
    store.save(state)
    assert store.load("0xCAFE") == state


def test_seed_contracts_skips_invalid_and_non_nft(conn):
    seed_contracts(conn, [
        {"address": BAYC.lower(), "name": "bayc", "type": "erc721"},
        {"address": "0x55d398326f99059fF775485246999027B3197955", "type": "erc20"},
        {"address": "not-an-address"},
        {"name": "no address"},
    ])
    assert tracked_contracts(conn) == [BAYC]


def test_tracked_contracts_applies_skip_list(conn):
    register_contract(conn, "0xBEEF")
    register_contract(conn, "0xCAFE")
    assert tracked_contracts(conn) == ["0xBEEF", "0xCAFE"]
    assert tracked_contracts(conn, skip={"0xbeef"}) == ["0xCAFE"]
