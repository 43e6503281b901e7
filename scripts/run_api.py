#!/usr/bin/env python3
"""Run the identity API with uvicorn."""

import logging
import os
import sys
from pathlib import Path

import uvicorn

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

logger = logging.getLogger(__name__)


def main():
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "3000"))

    logger.info(f"Starting TravelExplore identity API on {host}:{port}...")
    uvicorn.run("api.main:app", host=host, port=port)


if __name__ == "__main__":
    main()
