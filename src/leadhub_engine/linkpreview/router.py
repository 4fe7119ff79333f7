"""Link preview API."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from leadhub_engine.common.security import require_tenant_member

router = APIRouter(tags=["link-preview"])


class LinkPreviewResponse(BaseModel):
    title: str
    description: str = ""
    image: str = ""
    site_name: str = ""
    domain: str
    url: str


def _get_service():
    from leadhub_engine.deps import get_link_preview_service
    return get_link_preview_service()


@router.get("/link-preview", response_model=LinkPreviewResponse)
async def link_preview(
    url: str = Query(..., min_length=1, max_length=2048, pattern=r"^https?://"),
    _=Depends(require_tenant_member),
):
    return LinkPreviewResponse(**await _get_service().preview(url))
