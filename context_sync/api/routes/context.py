"""Organization context endpoints: trigger a sync, read current context."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
import structlog

from context_sync.api.auth import verify_api_key
from context_sync.api.dependencies import get_sync_service
from context_sync.api.models import (
    ContextRecordItem,
    ContextResponse,
    ErrorResponse,
    GenerateRequest,
    GenerateResponse,
    TopContentItem,
)
from context_sync.context.service import ContextSyncService
from context_sync.errors import StoreError

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/embeddings/organization")


@router.post(
    "/{organization_id}/generate",
    response_model=GenerateResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid API key"},
        502: {"model": ErrorResponse, "description": "Upstream data could not be ingested"},
    },
    summary="Synchronize an organization's context",
    description=(
        "Ingest analytics and posts (supplied in the body or fetched from the "
        "platform gateway) and regenerate every missing or stale context record."
    ),
)
async def generate_context(
    organization_id: str,
    request: GenerateRequest | None = None,
    api_key: str = Depends(verify_api_key),
    service: ContextSyncService = Depends(get_sync_service),
) -> GenerateResponse:
    request = request or GenerateRequest()

    result = await service.sync_organization(
        organization_id,
        raw_aggregates=request.analytics_data,
        raw_content_items=request.posts_data,
        organization_name=request.organization_name,
    )

    if result.ingestion_error is not None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Ingestion failed: {result.ingestion_error}",
        )

    return GenerateResponse(**result.to_dict())


@router.get(
    "/{organization_id}/context",
    response_model=ContextResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid API key"},
        500: {"model": ErrorResponse, "description": "Server error"},
    },
    summary="Get an organization's context",
    description="All current context records plus the highest-engagement content items.",
)
async def get_context(
    organization_id: str,
    limit: int | None = Query(
        default=None,
        ge=1,
        le=100,
        description="Number of top content items (default from SYNC_CONTEXT_TOP_ITEMS)",
    ),
    api_key: str = Depends(verify_api_key),
    service: ContextSyncService = Depends(get_sync_service),
) -> ContextResponse:
    try:
        context = await service.get_context(organization_id, top_limit=limit)
    except StoreError as e:
        logger.error("get_context_failed", organization_id=organization_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get organization context",
        )

    records = [
        ContextRecordItem(
            content=r.canonical_text,
            content_type=r.identity.content_type.value,
            sub_id=r.identity.sub_id,
            organization_name=r.organization_name,
            metadata=r.metadata,
            data_start_date=r.data_start_date,
            data_end_date=r.data_end_date,
            created_at=r.created_at,
            updated_at=r.updated_at,
            has_embedding=r.has_embedding,
        )
        for r in context.records
    ]
    top_items = [
        TopContentItem(
            external_id=i.external_id,
            body=i.body,
            likes=i.metrics.likes,
            comments=i.metrics.comments,
            shares=i.metrics.shares,
            impressions=i.metrics.impressions,
            engagement_rate=round(i.engagement_rate, 4),
            published_at=i.published_at,
        )
        for i in context.top_content_items
    ]

    return ContextResponse(
        organization_id=organization_id,
        records=records,
        top_content_items=top_items,
        total_records=len(records),
    )
