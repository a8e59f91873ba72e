import logging
import os
import sys

# Add the current directory to Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from spacebook.config import settings
from spacebook.main import app

logger = logging.getLogger("spacebook.startup")

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))

    logger.info(f"Starting {settings.api_title} {settings.api_version} on port {port}")
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        log_level=settings.log_level.lower(),
    )
