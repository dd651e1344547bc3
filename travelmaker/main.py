"""FastAPI application."""

from fastapi import FastAPI

from travelmaker.api.routes.health import router as health_router
from travelmaker.api.routes.images import router as images_router
from travelmaker.api.routes.metrics import router as metrics_router
from travelmaker.api.routes.proxy import router as proxy_router
from travelmaker.api.routes.suggestions import router as suggestions_router
from travelmaker.api.routes.trips import router as trips_router
from travelmaker.config import get_settings
from travelmaker.utils.logging import configure_logging

configure_logging(get_settings().log_level)

app = FastAPI(title="TravelMaker API", version="0.1.0")

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(proxy_router, tags=["proxy"])
app.include_router(trips_router, tags=["trips"])
app.include_router(suggestions_router, tags=["suggestions"])
app.include_router(images_router, tags=["images"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "TravelMaker API", "version": "0.1.0"}
