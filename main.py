"""
main.py — Entrance CBT server entry point
"""

import os
import sys
import logging

# ── package path (must stay at the top) ──────────────────────────────────────
_BASE_DIR = os.path.dirname(os.path.abspath(__file__))
if _BASE_DIR not in sys.path:
    sys.path.insert(0, _BASE_DIR)

from config import BASE_DIR, LOG_FILE, DEFAULT_HOST, DEFAULT_PORT, BACKEND_URL

# ── logging ──────────────────────────────────────────────────────────────────
try:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )
except PermissionError:
    # log file is locked by another process: console only
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)


def _start_server(host: str, port: int) -> None:
    import uvicorn
    from api.app import create_app

    logger.info(f"Uvicorn server starting on {host}:{port} (backend: {BACKEND_URL})")
    app = create_app()
    uvicorn.run(app, host=host, port=port, log_level="warning")


# ── main ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("=== Entrance CBT Started ===")
    os.chdir(BASE_DIR)
    try:
        _start_server(DEFAULT_HOST, DEFAULT_PORT)
    except KeyboardInterrupt:
        logger.info("Stopped by user.")
