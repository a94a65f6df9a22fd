#!/usr/bin/env python3
"""
kubedeck server
Start the FastAPI app under uvicorn.
"""

import uvicorn
from dotenv import load_dotenv

# Environment first, so settings see .env values
load_dotenv()

from kubedeck.config import get_settings
from kubedeck.core.logging import setup_logging

# Keep uvicorn's default log_config from replacing ours
setup_logging()

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "kubedeck.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_debug,
        log_level=settings.log_level.lower(),
        log_config=None,
    )
