"""Suggestion cache management endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from travelmaker.api.deps import get_suggestion_cache
from travelmaker.llm.cache import SuggestionCache
from travelmaker.models.suggestion import CachedSuggestionSummary

router = APIRouter(prefix="/suggestions/cache", tags=["suggestions"])


class ClearCacheResponse(BaseModel):
    removed: int


@router.get("", response_model=list[CachedSuggestionSummary])
async def list_cached_suggestions(
    cache: Annotated[SuggestionCache, Depends(get_suggestion_cache)],
) -> list[CachedSuggestionSummary]:
    """Cached suggestions, newest first."""
    return cache.list_entries()


@router.delete("", response_model=ClearCacheResponse)
async def clear_suggestion_cache(
    cache: Annotated[SuggestionCache, Depends(get_suggestion_cache)],
) -> ClearCacheResponse:
    return ClearCacheResponse(removed=cache.clear_all())


@router.delete("/{cache_key}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cached_suggestion(
    cache_key: str,
    cache: Annotated[SuggestionCache, Depends(get_suggestion_cache)],
) -> Response:
    """Remove one cached suggestion; keys outside the cache are not found."""
    if not cache.clear(cache_key):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cache entry not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
