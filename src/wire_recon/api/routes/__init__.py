"""API routes."""

from wire_recon.api.routes.health import router as health_router
from wire_recon.api.routes.metrics import router as metrics_router
from wire_recon.api.routes.payments import router as payments_router

__all__ = ["health_router", "metrics_router", "payments_router"]
