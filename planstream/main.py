"""Main FastAPI application for the planstream service."""
from fastapi import FastAPI, Request

from planstream.api.routes.plans import router as plans_router
from planstream.core.config import settings
from planstream.core.logging import configure_logging
from planstream.core.middleware import RequestIDMiddleware
from planstream.core.rate_limit import RateLimiter
from planstream.observability.client import init_opik
from planstream.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.state.rate_limiter = RateLimiter(
    limit_per_minute=settings.rate_limit_per_minute,
    burst=settings.rate_limit_burst,
)
# Callables (plan_id, plan) run after a plan is committed, e.g. insight recomputation.
app.state.plan_saved_hooks = []
app.include_router(plans_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.get("/health", tags=["health"], summary="Readiness check")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so load balancers can check the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
