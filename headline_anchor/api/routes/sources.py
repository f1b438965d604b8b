"""Source listing endpoint."""

from fastapi import APIRouter, Depends

from headline_anchor.api.dependencies import get_sources_repository
from headline_anchor.api.models import SourceResponse
from headline_anchor.sources.repository import SourcesRepository

router = APIRouter()


@router.get(
    "/sources",
    response_model=list[SourceResponse],
    summary="List enabled sources",
)
async def list_sources(
    repo: SourcesRepository = Depends(get_sources_repository),
) -> list[SourceResponse]:
    sources = await repo.get_enabled()
    return [
        SourceResponse(
            id=s.id,
            name=s.name,
            feed_url=s.feed_url,
            enabled=s.enabled,
            poll_interval_seconds=s.poll_interval_seconds,
        )
        for s in sources
    ]
