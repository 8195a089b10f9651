"""
Verifier FastAPI Application

HTTP front of the RAA code verification pipeline.

Structure:
    - libs/core/config.py: settings (env / .env)
    - dependencies.py: singleton instances with lazy initialization
    - lifespan.py: startup/shutdown handlers
    - routers/: health, verify, debug endpoints

Run:
    python -m apps.services.verifier.app
"""

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from libs.core.config import get_settings

from apps.services.verifier.lifespan import lifespan
from apps.services.verifier.routers import debug_router, health_router, verify_router


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    settings = get_settings()

    application = FastAPI(
        title="RAA Verifier",
        description="Verifies AVAL registration codes against the public RAA registry",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS: browser clients on any origin, including preflight
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    application.include_router(health_router)
    application.include_router(verify_router)

    if settings.debug_routes:
        application.include_router(debug_router)

    return application


app = create_app()


def main() -> None:
    """Serve the app with uvicorn on the configured host/port."""
    settings = get_settings()
    uvicorn.run(
        "apps.services.verifier.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        timeout_keep_alive=180,
    )


if __name__ == "__main__":
    main()
