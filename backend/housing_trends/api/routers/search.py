from fastapi import APIRouter, Body, Depends, Query, HTTPException, status
from typing import List, Optional, Dict, Any
from housing_trends.api.dependencies import get_search_service
from housing_trends.core.auth import get_current_user_id, get_optional_user_id
from housing_trends.core.exceptions import (
    InvalidFilterError, SavedSearchNotFoundError, RegionNotFoundError
)
from housing_trends.models.records import County
from housing_trends.models.saved_search import SavedSearch, SaveSearchRequest, UpdateSearchRequest
from housing_trends.models.search import SearchResultSet, SearchHistoryEntry, PopularSearch
from housing_trends.modules.search.service import SearchService
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def invalid_filter_response(error: InvalidFilterError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "message": "Invalid search filters",
            "issues": [issue.model_dump() for issue in error.issues]
        }
    )


def not_found_response(error: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))


@router.post("/", response_model=SearchResultSet)
async def search_records(
    filters: Optional[Dict[str, Any]] = Body(None),
    caller_id: Optional[str] = Depends(get_optional_user_id),
    search_service: SearchService = Depends(get_search_service)
):
    """
    Search housing, rent and market trend records.

    Supports:
    - Region filters (state codes and county FIPS codes)
    - Price, rent, year-over-year change and affordability bounds
    - Sorting and pagination, with aggregates over the full match
    """
    try:
        return await search_service.search(filters, caller_id)

    except InvalidFilterError as e:
        raise invalid_filter_response(e)
    except Exception as e:
        logger.error(f"Search failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Search service temporarily unavailable"
        )


# Saved searches endpoints
@router.get("/saved", response_model=List[SavedSearch])
async def list_saved_searches(
    caller_id: str = Depends(get_current_user_id),
    search_service: SearchService = Depends(get_search_service)
):
    """Get the caller's saved searches, newest first."""
    try:
        return await search_service.list_saved(caller_id)

    except Exception as e:
        logger.error(f"Failed to get saved searches: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve saved searches"
        )


@router.post("/saved", response_model=SavedSearch, status_code=status.HTTP_201_CREATED)
async def save_search(
    search_data: SaveSearchRequest,
    caller_id: str = Depends(get_current_user_id),
    search_service: SearchService = Depends(get_search_service)
):
    """Save a new search for the caller."""
    try:
        return await search_service.save_search(
            caller_id=caller_id,
            name=search_data.name,
            document=search_data.filters,
            cadence=search_data.cadence,
            description=search_data.description,
            notifications_enabled=search_data.notifications_enabled
        )

    except InvalidFilterError as e:
        raise invalid_filter_response(e)
    except Exception as e:
        logger.error(f"Failed to save search: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save search"
        )


@router.get("/history", response_model=List[SearchHistoryEntry])
async def get_search_history(
    limit: int = Query(10, ge=1, le=100),
    caller_id: str = Depends(get_current_user_id),
    search_service: SearchService = Depends(get_search_service)
):
    """Get the caller's most recent searches."""
    try:
        return await search_service.search_history(caller_id, limit)

    except Exception as e:
        logger.error(f"Failed to get search history: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve search history"
        )


@router.get("/popular", response_model=List[PopularSearch])
async def get_popular_searches(
    limit: int = Query(10, ge=1, le=100),
    search_service: SearchService = Depends(get_search_service)
):
    """Get the most frequently executed filter combinations."""
    try:
        return await search_service.popular_searches(limit)

    except Exception as e:
        logger.error(f"Failed to get popular searches: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve popular searches"
        )


@router.get("/regions/{fips_code}/similar", response_model=List[County])
async def get_similar_regions(
    fips_code: str,
    limit: int = Query(5, ge=1, le=50),
    search_service: SearchService = Depends(get_search_service)
):
    """Get counties comparable to the given one."""
    try:
        return await search_service.similar_regions(fips_code, limit)

    except RegionNotFoundError as e:
        raise not_found_response(e)
    except Exception as e:
        logger.error(f"Failed to find similar regions for {fips_code}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to find similar regions"
        )


@router.get("/saved/{search_id}", response_model=SavedSearch)
async def get_saved_search(
    search_id: str,
    caller_id: str = Depends(get_current_user_id),
    search_service: SearchService = Depends(get_search_service)
):
    try:
        return await search_service.get_saved(search_id, caller_id)

    except SavedSearchNotFoundError as e:
        raise not_found_response(e)
    except Exception as e:
        logger.error(f"Failed to get saved search {search_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve saved search"
        )


@router.put("/saved/{search_id}", response_model=SavedSearch)
async def update_saved_search(
    search_id: str,
    search_data: UpdateSearchRequest,
    caller_id: str = Depends(get_current_user_id),
    search_service: SearchService = Depends(get_search_service)
):
    """Update an existing saved search."""
    try:
        return await search_service.update_saved(search_id, caller_id, search_data)

    except InvalidFilterError as e:
        raise invalid_filter_response(e)
    except SavedSearchNotFoundError as e:
        raise not_found_response(e)
    except Exception as e:
        logger.error(f"Failed to update saved search: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update saved search"
        )


@router.delete("/saved/{search_id}")
async def delete_saved_search(
    search_id: str,
    caller_id: str = Depends(get_current_user_id),
    search_service: SearchService = Depends(get_search_service)
):
    """Delete a saved search."""
    try:
        await search_service.delete_saved(search_id, caller_id)
        return {"message": "Saved search deleted successfully"}

    except SavedSearchNotFoundError as e:
        raise not_found_response(e)
    except Exception as e:
        logger.error(f"Failed to delete saved search: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete saved search"
        )


@router.post("/saved/{search_id}/execute", response_model=SearchResultSet)
async def execute_saved_search(
    search_id: str,
    caller_id: str = Depends(get_current_user_id),
    search_service: SearchService = Depends(get_search_service)
):
    """Re-run a saved search with its stored filters."""
    try:
        return await search_service.execute_saved(search_id, caller_id)

    except SavedSearchNotFoundError as e:
        raise not_found_response(e)
    except InvalidFilterError as e:
        raise invalid_filter_response(e)
    except Exception as e:
        logger.error(f"Failed to execute saved search {search_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Search service temporarily unavailable"
        )
