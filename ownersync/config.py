import os, json, pathlib, logging
from dotenv import load_dotenv

# always load from local file
load_dotenv(".env")

logger = logging.getLogger(__name__)

# -------- env / config --------
FEED_STYLE         = os.getenv("FEED_STYLE", "etherscan").lower()
FEED_BASE_URL      = os.getenv("FEED_BASE_URL", "https://api.etherscan.io/v2/api")
ETHERSCAN_API_KEY  = os.getenv("ETHERSCAN_API_KEY", "")
CHAIN_ID           = int(os.getenv("CHAIN_ID", "1"))
PAGE_SIZE          = int(os.getenv("PAGE_SIZE", "1000"))
RESULT_WINDOW      = int(os.getenv("RESULT_WINDOW", "10000"))
REQUEST_DELAY      = float(os.getenv("REQUEST_DELAY", "0.25"))
FETCH_RETRIES      = int(os.getenv("FETCH_RETRIES", "3"))
HTTP_TIMEOUT       = float(os.getenv("HTTP_TIMEOUT", "30"))
DB_PATH            = os.getenv("DB_PATH", "owners.sqlite")
SYNC_EVERY_SECONDS = int(os.getenv("SYNC_EVERY_SECONDS", "300"))
LOG_LEVEL          = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT         = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

ZERO_ADDR = "0x0000000000000000000000000000000000000000"

# contracts the runner never syncs (lowercased)
SKIP_CONTRACTS = {
    a.strip().lower()
    for a in os.getenv("SKIP_CONTRACTS", "").split(",")
    if a.strip()
}

# contracts watchlist (optional)
CONTRACTS_PATH = os.getenv("CONTRACTS_PATH", "contracts.json")
CONTRACTS = []
p = pathlib.Path(CONTRACTS_PATH)
if p.exists():
    try:
        CONTRACTS = json.loads(p.read_text())
    except ValueError as e:
        logger.warning(f"[contracts] failed to parse {CONTRACTS_PATH}: {e}")
else:
    logger.info(f"[contracts] {CONTRACTS_PATH} not found; continuing without contract watchlist")


def require_feed_credentials():
    if FEED_STYLE == "etherscan" and not ETHERSCAN_API_KEY:
        raise SystemExit("Missing ETHERSCAN_API_KEY in .env")
