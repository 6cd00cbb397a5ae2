import argparse, asyncio, logging, uvloop

import config
from db import db, ensure_schema, seed_contracts, tracked_contracts, SqlitePersister
from feed import make_feed
from helpers import to_addr
from sync import ContractSyncer

logger = logging.getLogger("ownersync")

def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Reconstruct NFT ownership from explorer transfer history")
    ap.add_argument("contracts", nargs="*", help="only sync these contract addresses")
    ap.add_argument("--once", action="store_true", help="run a single round and exit")
    return ap.parse_args(argv)

async def run_round(syncer, conn, only=None):
    addresses = [to_addr(a) for a in only] if only else tracked_contracts(conn)
    results = []
    # one contract at a time; a contract's failure does not stop the round
    for address in addresses:
        if address.lower() in config.SKIP_CONTRACTS:
            logger.info(f"[runner] skipping {address} (SKIP_CONTRACTS)")
            continue
        results.append(await syncer.sync(address))
    ok = sum(1 for r in results if r.success)
    logger.info(f"[runner] round done: {ok}/{len(results)} contracts synced")
    return results

def setup_logging():
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format=config.LOG_FORMAT,
    )

async def main(argv=None):
    args = parse_args(argv)
    setup_logging()
    config.require_feed_credentials()

    conn = db()
    ensure_schema(conn)
    seed_contracts(conn, config.CONTRACTS)
    logger.info(f"[runner] tracking {len(tracked_contracts(conn))} contract(s), db={config.DB_PATH}")

    async with make_feed() as feed:
        syncer = ContractSyncer(feed, SqlitePersister(conn))
        while True:
            await run_round(syncer, conn, args.contracts)
            if args.once:
                break
            await asyncio.sleep(config.SYNC_EVERY_SECONDS)

if __name__ == "__main__":
    uvloop.run(main())
