"""
AI car search API route.
"""

from fastapi import APIRouter

from amber_drive.api.dependencies import AuthDep, DatabaseDep
from amber_drive.schemas import AISearchRequest, AISearchResponse
from amber_drive.services.ai_search_service import AISearchService

router = APIRouter()


@router.post("", response_model=AISearchResponse)
async def ai_search(body: AISearchRequest, db: DatabaseDep, auth: AuthDep):
    """
    Find active cars matching a natural-language request.

    Upstream model failures are returned as 502.
    """
    service = AISearchService(db, auth)
    return await service.search_cars(body.prompt)
