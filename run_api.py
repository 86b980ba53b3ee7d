"""Startup script for the FastAPI backend.

This script starts the FastAPI server with configuration from environment variables.
"""

import os
import uvicorn
from dotenv import load_dotenv
from loguru import logger

from api.security import get_tls_config

# Load environment variables
load_dotenv()

if __name__ == "__main__":
    # Get configuration from environment
    host = os.getenv("API_HOST", "127.0.0.1")
    port = int(os.getenv("API_PORT", "8000"))
    reload = os.getenv("API_RELOAD", "false").lower() == "true"
    log_level = os.getenv("LOG_LEVEL", "info").lower()

    logger.info(f"Starting Judicial Clerk API on {host}:{port}")
    logger.info(f"CORS origins: {os.getenv('CORS_ORIGINS', 'http://localhost:3000,http://localhost:8000')}")
    logger.info(f"Corpus database: {os.getenv('CORPUS_DB_PATH', 'judicial_corpus.db')}")

    tls_config = get_tls_config()
    ssl_options = {}
    if tls_config:
        ssl_options = {
            "ssl_certfile": tls_config["certfile"],
            "ssl_keyfile": tls_config["keyfile"],
        }
    else:
        logger.warning("TLS not configured - keep the API bound to localhost")

    # Start server
    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
        **ssl_options
    )
