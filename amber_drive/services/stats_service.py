"""
Dashboard statistics.
"""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from amber_drive.models.car import Car, CarStatus
from amber_drive.models.quote import Quote, QuoteStatus
from amber_drive.services.auth_service import AuthContext, require_auth

RECENT_QUOTES_LIMIT = 5


class StatsService:
    """Counters for the admin dashboard."""

    def __init__(self, session: AsyncSession, auth: AuthContext | None):
        self.session = session
        self.auth = require_auth(auth)

    async def get_dashboard_stats(self) -> dict[str, Any]:
        total_cars = await self._count(Car)
        active_cars = await self._count(Car, Car.status == CarStatus.ACTIVE)
        total_quotes = await self._count(Quote)

        status_counts = dict(
            (await self.session.execute(
                select(Quote.status, func.count(Quote.id)).group_by(Quote.status)
            )).all()
        )

        recent = await self.session.execute(
            select(Quote)
            .order_by(Quote.created_at.desc(), Quote.id.desc())
            .limit(RECENT_QUOTES_LIMIT)
        )

        return {
            "total_cars": total_cars,
            "active_cars": active_cars,
            "total_quotes": total_quotes,
            "draft_quotes": status_counts.get(QuoteStatus.DRAFT, 0),
            "sent_quotes": status_counts.get(QuoteStatus.SENT, 0),
            "confirmed_quotes": status_counts.get(QuoteStatus.CONFIRMED, 0),
            "recent_quotes": list(recent.scalars().all()),
        }

    async def _count(self, model, *conditions) -> int:
        query = select(func.count(model.id))
        if conditions:
            query = query.where(*conditions)
        return (await self.session.execute(query)).scalar_one()
