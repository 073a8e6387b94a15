"""
Quote API routes.
"""

from fastapi import APIRouter, Query, status

from amber_drive.api.dependencies import AuthDep, DatabaseDep
from amber_drive.models.quote import QuoteStatus
from amber_drive.schemas import (
    BulkDeleteRequest, QuoteCreate, QuoteListResponse, QuoteResponse,
    QuoteStatusUpdate, QuoteUpdate,
)
from amber_drive.services.quote_service import QuoteService

router = APIRouter()


@router.get("", response_model=QuoteListResponse)
async def list_quotes(
    db: DatabaseDep,
    auth: AuthDep,
    search: str | None = None,
    status_filter: QuoteStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """List quotes, newest first."""
    service = QuoteService(db, auth)
    quotes, total = await service.list_quotes(
        search=search,
        status=status_filter,
        limit=limit,
        offset=offset,
    )

    return {
        "items": quotes,
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.post("", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
async def create_quote(body: QuoteCreate, db: DatabaseDep, auth: AuthDep):
    """Create a draft quote from selected cars."""
    return await QuoteService(db, auth).create_quote(body)


# Declared before /{quote_id} so the literal path wins
@router.post("/bulk-delete")
async def bulk_delete_quotes(body: BulkDeleteRequest, db: DatabaseDep, auth: AuthDep):
    """Delete several quotes at once."""
    deleted = await QuoteService(db, auth).bulk_delete(body.ids)
    return {"success": True, "deleted": deleted}


@router.get("/{quote_id}", response_model=QuoteResponse)
async def get_quote(quote_id: int, db: DatabaseDep, auth: AuthDep):
    """Get a quote with its lines."""
    return await QuoteService(db, auth).get_quote(quote_id)


@router.put("/{quote_id}", response_model=QuoteResponse)
async def update_quote(quote_id: int, body: QuoteUpdate, db: DatabaseDep, auth: AuthDep):
    """Edit client details and line pricing; the total is recomputed."""
    return await QuoteService(db, auth).update_quote(quote_id, body)


@router.patch("/{quote_id}/status", response_model=QuoteResponse)
async def update_quote_status(
    quote_id: int,
    body: QuoteStatusUpdate,
    db: DatabaseDep,
    auth: AuthDep,
):
    """Move a quote to another status."""
    return await QuoteService(db, auth).set_status(quote_id, body.status)


@router.delete("/{quote_id}")
async def delete_quote(quote_id: int, db: DatabaseDep, auth: AuthDep):
    """Delete a quote and its lines."""
    await QuoteService(db, auth).delete_quote(quote_id)
    return {"success": True}
