"""Health check endpoints."""

import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Response

from travelmaker.api.deps import get_store
from travelmaker.config import Settings, get_settings
from travelmaker.db.repositories import KeyValueStore, StorageError

router = APIRouter()


def check_storage(store: KeyValueStore) -> tuple[bool, str]:
    """Check storage backend connectivity.

    Returns:
        (is_ok, status_message)
    """
    try:
        store.keys()
        return (True, "ok")
    except StorageError as e:
        return (False, f"error: {type(e.__cause__ or e).__name__}")


def describe_llm(settings: Settings) -> str:
    """Which suggestion backend is configured."""
    if settings.gemini_api_key and settings.gemini_api_key.get_secret_value():
        return "gemini"
    if settings.openai_api_key and settings.openai_api_key.get_secret_value():
        return "openai"
    return "stub"


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple liveness check.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(
    store: Annotated[KeyValueStore, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, Any] | Response:
    """Readiness check.

    Returns:
        200 with component status if storage is reachable, 503 otherwise
    """
    storage_ok, storage_status = check_storage(store)

    response_body = {
        "status": "ok" if storage_ok else "degraded",
        "components": {
            "storage": storage_status,
            "storage_backend": settings.storage_backend,
            "llm": describe_llm(settings),
        },
    }

    if not storage_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body
