from fastapi import FastAPI, Request

from core.env_utils import load_dotenv_if_available
from core.logging import get_logger
from services.plan_catalog import get_plan_catalog
from services.plan_service import resolve_plan_context
from web import routers

load_dotenv_if_available()

logger = get_logger(__name__)

app = FastAPI(
    title="Entitlement Engine API",
    description="Plan tier entitlement decisions, upgrade prompts and the plan catalog.",
    version="0.1.0",
)


@app.middleware("http")
async def inject_plan_context(request: Request, call_next):
    """Ensure plan context is available on each request via request.state."""
    context = resolve_plan_context(request.headers)
    request.state.plan_context = context
    response = await call_next(request)
    response.headers.setdefault("X-Plan-Tier", context.tier.value)
    return response


@app.get("/", summary="Health Check", tags=["Default"])
def health_check():
    """Service liveness probe."""
    return {"status": "ok", "message": "Entitlement Engine API is running."}


app.include_router(routers.entitlements.router, prefix="/api/v1")


@app.on_event("startup")
async def validate_plan_catalog() -> None:
    """Build the plan catalog up front so a broken catalog stops the service from starting."""
    catalog = get_plan_catalog()
    logger.info("Plan catalog validated for tiers: %s", ", ".join(tier.value for tier in catalog.tiers))
