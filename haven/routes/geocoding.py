"""Place autocomplete proxy (Nominatim) for location pickers"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from .. import config
from ..auth import get_current_user
from ..models import Profile
from ..rate_limiter import create_rate_limiter
from ..services.geocoding_service import GeocodingError, autocomplete

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/geocoding", tags=["Geocoding"])

rate_limit_autocomplete = create_rate_limiter(
    limit=config.RATE_LIMIT_SEARCH_PER_MINUTE, window_seconds=60, key_prefix="geocode_autocomplete"
)


class AutocompleteResponseItem(BaseModel):
    display_name: str
    lat: Optional[str] = None
    lon: Optional[str] = None


class AutocompleteResponse(BaseModel):
    results: list[AutocompleteResponseItem]


@router.get("/search", response_model=AutocompleteResponse)
async def search_places(
    q: str = Query(..., max_length=200),
    limit: int = Query(6, ge=1, le=10),
    current_user: Profile = Depends(get_current_user),
    _: None = Depends(rate_limit_autocomplete),
):
    try:
        results = await autocomplete(q, limit)
    except GeocodingError as e:
        raise HTTPException(status_code=502, detail="Geocoding provider error") from e
    return AutocompleteResponse(results=[AutocompleteResponseItem(**r) for r in results])
