"""
Verifier Router Modules

    - health: liveness endpoints
    - verify: POST /verify
    - debug: deployment smoke tests (optional)
"""

from apps.services.verifier.routers.health import router as health_router
from apps.services.verifier.routers.verify import router as verify_router
from apps.services.verifier.routers.debug import router as debug_router

__all__ = [
    "health_router",
    "verify_router",
    "debug_router",
]
