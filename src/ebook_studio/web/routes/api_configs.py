"""API routes for per-user AI capability configuration."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ebook_studio.services.storage import ProjectStore
from ebook_studio.web.dependencies import get_store
from ebook_studio.web.models.web_models import (
    ApiConfigCreateRequest,
    ApiConfigResponse,
    ApiConfigUpdateRequest,
    SuccessResponse,
)

router = APIRouter()

logger = logging.getLogger(__name__)


@router.post("", response_model=ApiConfigResponse)
async def create_api_config(request: ApiConfigCreateRequest, store: ProjectStore = Depends(get_store)):
    """Store a provider configuration for one capability type."""
    config = store.create_api_config(**request.model_dump())
    logger.info("Stored %s config '%s' for user %s", config.type.value, config.name, config.user_id)
    return ApiConfigResponse.from_config(config)


@router.get("", response_model=List[ApiConfigResponse])
async def list_api_configs(user_id: str = Query(..., alias="userId", min_length=1), store: ProjectStore = Depends(get_store)):
    """List a user's configurations."""
    return [ApiConfigResponse.from_config(config) for config in store.list_api_configs(user_id)]


@router.put("/{config_id}", response_model=ApiConfigResponse)
async def update_api_config(
    config_id: str,
    request: ApiConfigUpdateRequest,
    user_id: str = Query(..., alias="userId", min_length=1),
    store: ProjectStore = Depends(get_store),
):
    """Update a configuration owned by the user."""
    config = store.update_api_config(config_id, user_id, **request.model_dump(exclude_unset=True))
    if config is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="API configuration not found")
    return ApiConfigResponse.from_config(config)


@router.delete("/{config_id}", response_model=SuccessResponse)
async def delete_api_config(
    config_id: str,
    user_id: str = Query(..., alias="userId", min_length=1),
    store: ProjectStore = Depends(get_store),
):
    """Delete a configuration owned by the user."""
    if not store.delete_api_config(config_id, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="API configuration not found")
    return SuccessResponse(message="API configuration deleted")
