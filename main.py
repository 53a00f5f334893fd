"""
FastAPI main application entry point.
"""

import json
import os

import uvicorn

# Import logging system first
from core.logging import setup_logging, get_logger

# Setup logging early
setup_logging()
logger = get_logger("main")

from app import app
from core.config import settings

os.makedirs("cache", exist_ok=True)


def export_openapi(output_path: str = "cache/openapi.json") -> str:
    """Write the OpenAPI schema to ``output_path`` for client generation."""
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(app.openapi(), f, indent=2)
    logger.info("OpenAPI schema exported", output_path=output_path)
    return output_path


# Run the application
if __name__ == "__main__":
    try:
        export_openapi()
    except OSError as e:
        logger.error("Error exporting OpenAPI schema", error=str(e), exc_info=True)

    logger.info("Starting uvicorn server", host="0.0.0.0", port=settings.port)
    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        reload_includes=["*.py"],
        reload_excludes=["*.pyc", "*.log", "*.db", "*.json"],
    )
