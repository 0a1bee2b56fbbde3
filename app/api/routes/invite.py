from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse

from app.api.deps import get_invite_resolver
from app.api.presenters.invite_page import (
    InvitePageLinks,
    render_invite_error,
    render_invite_page,
)
from app.core.config import settings
from app.services.invites import (
    INVALID_INVITE_MESSAGE,
    MISSING_CODE_MESSAGE,
    InviteResolver,
)
from app.schemas.outcomes import QueryOutcome

router = APIRouter(prefix="/invite", tags=["invite"])


def _page_links() -> InvitePageLinks:
    return InvitePageLinks(
        site_url=settings.site_url,
        deep_link_scheme=settings.app_deep_link_scheme,
        app_store_url=settings.app_store_url,
        play_store_url=settings.play_store_url,
    )


async def _invite_response(code: str | None, resolver: InviteResolver) -> HTMLResponse:
    links = _page_links()
    if not code:
        return HTMLResponse(render_invite_error(MISSING_CODE_MESSAGE, links=links), status_code=400)

    lookup = await resolver.lookup(code)
    if lookup.found:
        return HTMLResponse(render_invite_page(lookup.invite, links=links))

    # Same wording for outages and unknown codes; only the status differs.
    status_code = 503 if lookup.outcome is QueryOutcome.TRANSIENT_FAILURE else 404
    return HTMLResponse(render_invite_error(INVALID_INVITE_MESSAGE, links=links), status_code=status_code)


@router.get("", response_class=HTMLResponse)
async def invite_by_query(
    code: str | None = None,
    resolver: InviteResolver = Depends(get_invite_resolver),
):
    return await _invite_response(code, resolver)


@router.get("/{code}", response_class=HTMLResponse)
async def invite_by_path(
    code: str,
    query_code: str | None = Query(default=None, alias="code"),
    resolver: InviteResolver = Depends(get_invite_resolver),
):
    # ?code= wins over the path segment.
    return await _invite_response(query_code or code, resolver)
