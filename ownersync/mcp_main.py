# mcp_main.py
import config
from main import setup_logging
from mcp_server import mcp  # importing registers the tools

if __name__ == "__main__":
    setup_logging()
    config.require_feed_credentials()
    mcp.run(transport="http", host="0.0.0.0", port=8000)
