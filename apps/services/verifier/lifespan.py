"""
Verifier Application Lifespan Handler

Startup: logging, singleton wiring. The browser itself launches on the first
request that needs it.
Shutdown: close the shared browser and the Playwright driver.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from libs.core.config import get_settings
from libs.core.logging_config import get_logger, setup_logging

from apps.services.verifier import dependencies


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager."""
    settings = get_settings()
    setup_logging(level=settings.log_level, service_name="verifier")

    verifier_logger = get_logger("verifier")
    verifier_logger.info("Verifier starting...")

    try:
        dependencies.initialize_all()
    except Exception as e:
        verifier_logger.error(f"Failed to initialize dependencies: {e}")
        raise

    verifier_logger.info(f"Verifier ready (site={settings.site_url}, port={settings.port})")

    yield

    verifier_logger.info("Verifier shutting down...")
    await dependencies.get_browser_manager().close()
    verifier_logger.info("Verifier shutdown complete")
