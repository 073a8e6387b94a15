"""
Quote service.

Builds quotes from catalog cars, edits their pricing and manages their
lifecycle. Every line is a pricing snapshot: later catalog changes never
reach an existing quote.
"""

import secrets
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from amber_drive.config.settings import settings
from amber_drive.exceptions import (
    ConflictError, NotFoundError, QuoteNumberCollision, ValidationError,
)
from amber_drive.models.car import Car, CarStatus
from amber_drive.models.quote import Quote, QuoteCar, QuoteStatus
from amber_drive.schemas import CarPricingOverride, QuoteCreate, QuoteUpdate
from amber_drive.services.auth_service import AuthContext, require_auth
from amber_drive.utils.logging import ServiceLogger, audit_logger


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def generate_quote_number(today: date | None = None) -> str:
    """QT-YYYYMMDD-XXXXXX with six uppercase hex characters, dated in UTC."""
    today = today or utc_today()
    return f"{settings.quote.number_prefix}-{today:%Y%m%d}-{secrets.token_hex(3).upper()}"


class QuoteService:
    """
    Service for managing rental quotes.

    Provides:
    - Quote creation from selected cars with per-car overrides
    - Pricing edits with total recomputation
    - Status changes, search, delete and bulk delete
    """

    def __init__(self, session: AsyncSession, auth: AuthContext | None):
        self.session = session
        self.auth = require_auth(auth)
        self.logger = ServiceLogger("quotes")

    async def create_quote(self, data: QuoteCreate) -> Quote:
        """
        Create a draft quote with one snapshot line per selected car.

        Args:
            data: Client details, selected car IDs and optional overrides

        Returns:
            Created Quote with its lines

        Raises:
            ValidationError: No cars selected, or a selected car is archived
            NotFoundError: A selected car does not exist
            ConflictError: No unique quote number could be allocated
        """
        car_ids = list(dict.fromkeys(data.selected_cars))
        if not car_ids:
            raise ValidationError("Please select at least one car")

        with self.logger.operation(
            "create_quote", user_id=self.auth.user_id, car_count=len(car_ids),
        ) as op:
            cars = await self._load_cars(car_ids)

            lines = []
            for car_id in car_ids:
                car = cars[car_id]
                override = data.car_pricing.get(car_id) or CarPricingOverride()
                lines.append(QuoteCar(
                    car_id=car.id,
                    car=car,
                    car_name=car.display_name,
                    custom_price=_pick(override.price, car.default_price),
                    custom_km=_pick(override.km, car.default_km),
                    custom_extra_km=_pick(override.extra_km, car.default_extra_km),
                    custom_deposit=_pick(override.deposit, car.default_deposit),
                ))

            quote = Quote(
                quote_number=await self._generate_quote_number(),
                client_name=data.client_name,
                client_email=data.client_email,
                destination=data.destination,
                notes=data.notes,
                quote_date=data.quote_date or utc_today(),
                status=QuoteStatus.DRAFT,
                lines=lines,
                total_amount=_sum_prices(lines),
            )
            self.session.add(quote)

            try:
                await self.session.flush()
            except IntegrityError as e:
                raise ConflictError(
                    "Quote could not be saved", quote_number=quote.quote_number,
                ) from e

            op.update(quote_id=quote.id, quote_number=quote.quote_number, total=str(quote.total_amount))
        return quote

    async def get_quote(self, quote_id: int) -> Quote:
        """Get a quote with its lines and their cars."""
        quote = await self.session.get(Quote, quote_id)
        if not quote:
            raise NotFoundError("Quote", quote_id)
        return quote

    async def list_quotes(
        self,
        search: str | None = None,
        status: QuoteStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Quote], int]:
        """
        List quotes, newest first.

        Args:
            search: Contains match over client name, quote number and destination
            status: Exact status filter
            limit: Maximum results
            offset: Pagination offset

        Returns:
            Tuple of (quotes list, total count)
        """
        conditions = []

        if search:
            search_pattern = f"%{search}%"
            conditions.append(
                or_(
                    Quote.client_name.ilike(search_pattern),
                    Quote.quote_number.ilike(search_pattern),
                    Quote.destination.ilike(search_pattern),
                )
            )

        if status:
            conditions.append(Quote.status == status)

        count_query = select(func.count(Quote.id))
        query = select(Quote)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total = (await self.session.execute(count_query)).scalar_one()

        result = await self.session.execute(
            query.order_by(Quote.created_at.desc(), Quote.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    async def update_quote(self, quote_id: int, data: QuoteUpdate) -> Quote:
        """
        Edit client details and line pricing.

        The total is re-summed over every line of the quote, so a line left
        out of `data.cars` keeps contributing its current price. Lines whose
        car was deleted from the catalog can only be addressed by line id.

        Raises:
            NotFoundError: Quote does not exist
            ValidationError: A pricing entry matches no line of the quote
        """
        with self.logger.operation("update_quote", user_id=self.auth.user_id, quote_id=quote_id) as op:
            quote = await self.get_quote(quote_id)

            for field in ("client_name", "client_email", "destination", "notes"):
                if field not in data.model_fields_set:
                    continue
                value = getattr(data, field)
                if field == "client_name" and not value:
                    raise ValidationError("Client name is required")
                setattr(quote, field, value)

            for entry in data.cars or []:
                line = _find_line(quote, entry.id, entry.car_id)
                line.custom_price = entry.custom_price
                line.custom_km = entry.custom_km
                line.custom_extra_km = entry.custom_extra_km
                line.custom_deposit = entry.custom_deposit

            quote.total_amount = _sum_prices(quote.lines)
            quote.updated_at = datetime.utcnow()
            await self.session.flush()

            op["total"] = str(quote.total_amount)
        return quote

    async def set_status(self, quote_id: int, status: QuoteStatus) -> Quote:
        """Move a quote to any status."""
        quote = await self.get_quote(quote_id)
        old_status = quote.status

        quote.status = status
        quote.updated_at = datetime.utcnow()
        await self.session.flush()

        audit_logger.record(
            "status_change",
            "quote",
            quote.id,
            actor_id=self.auth.user_id,
            old_status=old_status.value,
            new_status=status.value,
        )
        return quote

    async def delete_quote(self, quote_id: int) -> None:
        """Hard-delete a quote and its lines."""
        quote = await self.get_quote(quote_id)
        await self.session.delete(quote)
        await self.session.flush()

        audit_logger.record("delete", "quote", quote_id, actor_id=self.auth.user_id)

    async def bulk_delete(self, ids: list[int]) -> int:
        """
        Delete many quotes; unknown IDs are skipped.

        Returns:
            Number of quotes deleted
        """
        if not ids:
            raise ValidationError("No IDs provided")

        with self.logger.operation("bulk_delete", user_id=self.auth.user_id, requested=len(ids)) as op:
            result = await self.session.execute(select(Quote).where(Quote.id.in_(ids)))
            quotes = list(result.scalars().all())
            for quote in quotes:
                await self.session.delete(quote)
            await self.session.flush()

            for quote in quotes:
                audit_logger.record("delete", "quote", quote.id, actor_id=self.auth.user_id)

            op["deleted"] = len(quotes)
        return len(quotes)

    async def _load_cars(self, car_ids: list[int]) -> dict[int, Car]:
        result = await self.session.execute(select(Car).where(Car.id.in_(car_ids)))
        cars = {car.id: car for car in result.scalars().all()}

        for car_id in car_ids:
            car = cars.get(car_id)
            if car is None:
                raise NotFoundError("Car", car_id)
            if car.status == CarStatus.ARCHIVED:
                raise ValidationError(f"Car {car_id} is archived", car_id=car_id)

        return cars

    @retry(
        retry=retry_if_exception_type(QuoteNumberCollision),
        stop=stop_after_attempt(settings.quote.number_max_attempts),
        reraise=True,
    )
    async def _generate_quote_number(self) -> str:
        quote_number = generate_quote_number()
        existing = await self.session.execute(
            select(Quote.id).where(Quote.quote_number == quote_number)
        )
        if existing.scalar_one_or_none() is not None:
            self.logger.warning("quote_number_collision", quote_number=quote_number)
            raise QuoteNumberCollision(quote_number)
        return quote_number


def _pick(override, default):
    return default if override is None else override


def _sum_prices(lines: list[QuoteCar]) -> Decimal:
    return sum((Decimal(str(line.custom_price or 0)) for line in lines), Decimal("0"))


def _find_line(quote: Quote, line_id: int | None, car_id: int | None) -> QuoteCar:
    for line in quote.lines:
        if line_id is not None:
            if line.id == line_id:
                return line
        elif line.car_id == car_id:
            return line
    raise ValidationError(
        f"No line of quote {quote.quote_number} matches",
        quote_id=quote.id,
        line_id=line_id,
        car_id=car_id,
    )
