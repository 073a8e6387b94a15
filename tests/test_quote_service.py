"""
Tests for the quote service.
"""

import re
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select

from amber_drive.exceptions import (
    ConflictError, NotFoundError, Unauthorized, ValidationError,
)
from amber_drive.models.car import CarStatus
from amber_drive.models.quote import Quote, QuoteCar, QuoteStatus
from amber_drive.schemas import CarPricingOverride, QuoteCreate, QuoteLineUpdate, QuoteUpdate
from amber_drive.services.catalog_service import CarCatalogService
from amber_drive.services.quote_service import QuoteService, generate_quote_number, utc_today

QUOTE_NUMBER_PATTERN = re.compile(r"^QT-\d{8}-[0-9A-F]{6}$")


def line_update(car_id, price, km=200, extra_km="2.50", deposit="3000"):
    return QuoteLineUpdate(
        car_id=car_id,
        custom_price=Decimal(str(price)),
        custom_km=km,
        custom_extra_km=Decimal(extra_km),
        custom_deposit=Decimal(deposit),
    )


class TestQuoteNumber:
    """Tests for quote number generation."""

    def test_format(self):
        """Numbers are QT-<date>-<6 uppercase hex>."""
        number = generate_quote_number(date(2024, 3, 9))
        assert QUOTE_NUMBER_PATTERN.match(number)
        assert number.startswith("QT-20240309-")

    def test_numbers_differ(self):
        numbers = {generate_quote_number() for _ in range(50)}
        assert len(numbers) == 50

    def test_date_is_taken_in_utc(self):
        """Late evening west of Greenwich is already the next day in UTC."""
        with patch("amber_drive.services.quote_service.datetime") as clock:
            clock.now.return_value = datetime(2025, 1, 1, 2, 30, tzinfo=timezone.utc)
            number = generate_quote_number()

        clock.now.assert_called_once_with(timezone.utc)
        assert number.startswith("QT-20250101-")


class TestCreateQuote:
    """Tests for QuoteService.create_quote."""

    @pytest.mark.asyncio
    async def test_two_cars_with_defaults(self, session, auth, make_car):
        """Two cars at 500 and 700 give a 1200 draft quote."""
        car_a = await make_car(name="911 Carrera", default_price=Decimal("500"))
        car_b = await make_car(name="Huracan", brand="Lamborghini", default_price=Decimal("700"))

        quote = await QuoteService(session, auth).create_quote(
            QuoteCreate(client_name="Jane Client", selected_cars=[car_a.id, car_b.id])
        )

        assert len(quote.lines) == 2
        assert quote.total_amount == Decimal("1200")
        assert quote.status == QuoteStatus.DRAFT
        assert quote.quote_date == utc_today()
        assert QUOTE_NUMBER_PATTERN.match(quote.quote_number)

    @pytest.mark.asyncio
    async def test_lines_snapshot_car_defaults(self, session, auth, make_car):
        car = await make_car(
            name="911 Carrera",
            default_price=Decimal("900"),
            default_km=150,
            default_extra_km=Decimal("3.00"),
            default_deposit=Decimal("5000"),
        )

        quote = await QuoteService(session, auth).create_quote(
            QuoteCreate(client_name="Jane", selected_cars=[car.id])
        )

        line = quote.lines[0]
        assert line.car_id == car.id
        assert line.car_name == "Porsche 911 Carrera"
        assert line.custom_price == Decimal("900")
        assert line.custom_km == 150
        assert line.custom_extra_km == Decimal("3.00")
        assert line.custom_deposit == Decimal("5000")

    @pytest.mark.asyncio
    async def test_override_takes_precedence(self, session, auth, make_car):
        """A price override of 1200 beats the 1000 default."""
        car = await make_car(default_price=Decimal("1000"))

        quote = await QuoteService(session, auth).create_quote(
            QuoteCreate(
                client_name="Jane",
                selected_cars=[car.id],
                car_pricing={car.id: CarPricingOverride(price=Decimal("1200"))},
            )
        )

        assert quote.lines[0].custom_price == Decimal("1200")
        assert quote.total_amount == Decimal("1200")

    @pytest.mark.asyncio
    async def test_override_fields_fall_back_independently(self, session, auth, make_car):
        car = await make_car(default_price=Decimal("1000"), default_km=300, default_deposit=Decimal("4000"))

        quote = await QuoteService(session, auth).create_quote(
            QuoteCreate(
                client_name="Jane",
                selected_cars=[car.id],
                car_pricing={car.id: CarPricingOverride(km=500)},
            )
        )

        line = quote.lines[0]
        assert line.custom_km == 500
        assert line.custom_price == Decimal("1000")
        assert line.custom_deposit == Decimal("4000")

    @pytest.mark.asyncio
    async def test_zero_override_is_kept(self, session, auth, make_car):
        """A zero override is a real value, not a missing one."""
        car = await make_car(default_deposit=Decimal("3000"))

        quote = await QuoteService(session, auth).create_quote(
            QuoteCreate(
                client_name="Jane",
                selected_cars=[car.id],
                car_pricing={car.id: CarPricingOverride(deposit=Decimal("0"))},
            )
        )

        assert quote.lines[0].custom_deposit == Decimal("0")

    @pytest.mark.asyncio
    async def test_empty_selection_persists_nothing(self, session, auth):
        service = QuoteService(session, auth)

        with pytest.raises(ValidationError):
            await service.create_quote(QuoteCreate(client_name="Jane", selected_cars=[]))

        count = (await session.execute(select(func.count(Quote.id)))).scalar_one()
        assert count == 0

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_collapsed(self, session, auth, make_car):
        car_a = await make_car(name="A", default_price=Decimal("100"))
        car_b = await make_car(name="B", default_price=Decimal("200"))

        quote = await QuoteService(session, auth).create_quote(
            QuoteCreate(client_name="Jane", selected_cars=[car_b.id, car_a.id, car_b.id])
        )

        assert [line.car_id for line in quote.lines] == [car_b.id, car_a.id]
        assert quote.total_amount == Decimal("300")

    @pytest.mark.asyncio
    async def test_unknown_car(self, session, auth, make_car):
        car = await make_car()

        with pytest.raises(NotFoundError):
            await QuoteService(session, auth).create_quote(
                QuoteCreate(client_name="Jane", selected_cars=[car.id, 9999])
            )

    @pytest.mark.asyncio
    async def test_archived_car_rejected(self, session, auth, make_car):
        car = await make_car(status=CarStatus.ARCHIVED)

        with pytest.raises(ValidationError):
            await QuoteService(session, auth).create_quote(
                QuoteCreate(client_name="Jane", selected_cars=[car.id])
            )

    @pytest.mark.asyncio
    async def test_quote_number_collision_is_retried(self, session, auth, make_car):
        car = await make_car()
        service = QuoteService(session, auth)

        with patch("amber_drive.services.quote_service.secrets.token_hex", return_value="abcdef"):
            first = await service.create_quote(QuoteCreate(client_name="First", selected_cars=[car.id]))

        with patch(
            "amber_drive.services.quote_service.secrets.token_hex",
            side_effect=["abcdef", "123abc"],
        ):
            second = await service.create_quote(QuoteCreate(client_name="Second", selected_cars=[car.id]))

        assert first.quote_number.endswith("-ABCDEF")
        assert second.quote_number.endswith("-123ABC")

    @pytest.mark.asyncio
    async def test_persistent_collision_raises_conflict(self, session, auth, make_car):
        car = await make_car()
        service = QuoteService(session, auth)

        with patch("amber_drive.services.quote_service.secrets.token_hex", return_value="abcdef"):
            await service.create_quote(QuoteCreate(client_name="First", selected_cars=[car.id]))

            with pytest.raises(ConflictError):
                await service.create_quote(QuoteCreate(client_name="Second", selected_cars=[car.id]))

    @pytest.mark.asyncio
    async def test_unique_constraint_maps_to_conflict(self, session, auth, make_car):
        car = await make_car()
        service = QuoteService(session, auth)
        existing = await service.create_quote(QuoteCreate(client_name="First", selected_cars=[car.id]))

        with patch.object(
            QuoteService, "_generate_quote_number", AsyncMock(return_value=existing.quote_number),
        ):
            with pytest.raises(ConflictError):
                await service.create_quote(QuoteCreate(client_name="Second", selected_cars=[car.id]))

    @pytest.mark.asyncio
    async def test_quote_numbers_are_unique(self, session, auth, make_car):
        car = await make_car()
        service = QuoteService(session, auth)

        quotes = [
            await service.create_quote(QuoteCreate(client_name=f"Client {i}", selected_cars=[car.id]))
            for i in range(10)
        ]

        numbers = [q.quote_number for q in quotes]
        assert len(set(numbers)) == 10
        assert all(QUOTE_NUMBER_PATTERN.match(n) for n in numbers)

    @pytest.mark.asyncio
    async def test_snapshot_survives_catalog_change(self, session_factory, auth, make_car, session):
        car = await make_car(default_price=Decimal("1000"))
        quote = await QuoteService(session, auth).create_quote(
            QuoteCreate(client_name="Jane", selected_cars=[car.id])
        )
        await session.commit()

        car.default_price = Decimal("1500")
        await session.commit()

        async with session_factory() as fresh:
            stored = await fresh.get(Quote, quote.id)
            assert stored.lines[0].custom_price == Decimal("1000")
            assert stored.total_amount == Decimal("1000")

    def test_requires_auth(self, session):
        with pytest.raises(Unauthorized):
            QuoteService(session, None)


class TestUpdateQuote:
    """Tests for the pricing editor."""

    @pytest.fixture
    def service(self, session, auth):
        return QuoteService(session, auth)

    @pytest.fixture
    def two_car_quote(self, service, make_car):
        async def _create():
            car_a = await make_car(name="A", default_price=Decimal("500"))
            car_b = await make_car(name="B", default_price=Decimal("700"))
            quote = await service.create_quote(
                QuoteCreate(client_name="Jane", selected_cars=[car_a.id, car_b.id])
            )
            return quote, car_a, car_b

        return _create

    @pytest.mark.asyncio
    async def test_edit_first_line_recomputes_total(self, service, two_car_quote):
        """500 -> 600 with both lines sent gives 1300."""
        quote, car_a, car_b = await two_car_quote()

        updated = await service.update_quote(
            quote.id,
            QuoteUpdate(cars=[line_update(car_a.id, 600), line_update(car_b.id, 700)]),
        )

        assert updated.total_amount == Decimal("1300")
        assert updated.lines[0].custom_price == Decimal("600")

    @pytest.mark.asyncio
    async def test_omitted_line_keeps_its_price_in_total(self, service, two_car_quote):
        quote, car_a, car_b = await two_car_quote()

        updated = await service.update_quote(quote.id, QuoteUpdate(cars=[line_update(car_a.id, 600)]))

        assert updated.total_amount == Decimal("1300")
        assert updated.lines[1].custom_price == Decimal("700")

    @pytest.mark.asyncio
    async def test_total_matches_lines_after_edits(self, service, two_car_quote):
        quote, car_a, car_b = await two_car_quote()

        for price_a, price_b in [(100, 200), (1000.5, 0), (42, 42)]:
            updated = await service.update_quote(
                quote.id,
                QuoteUpdate(cars=[line_update(car_a.id, price_a), line_update(car_b.id, price_b)]),
            )
            assert updated.total_amount == sum(line.custom_price for line in updated.lines)

    @pytest.mark.asyncio
    async def test_scalar_fields_partial_update(self, service, two_car_quote):
        quote, _, _ = await two_car_quote()

        updated = await service.update_quote(quote.id, QuoteUpdate(destination="Monaco"))

        assert updated.destination == "Monaco"
        assert updated.client_name == "Jane"
        assert updated.total_amount == Decimal("1200")

    @pytest.mark.asyncio
    async def test_entry_for_car_not_in_quote(self, service, two_car_quote, make_car):
        quote, _, _ = await two_car_quote()
        other = await make_car(name="Other")

        with pytest.raises(ValidationError):
            await service.update_quote(quote.id, QuoteUpdate(cars=[line_update(other.id, 100)]))

    @pytest.mark.asyncio
    async def test_missing_quote(self, service):
        with pytest.raises(NotFoundError):
            await service.update_quote(404, QuoteUpdate(notes="x"))

    @pytest.mark.asyncio
    async def test_reprice_line_by_id_after_car_deleted(self, session_factory, auth, make_car, session):
        """A line whose car left the catalog is still editable through its line id."""
        car_a = await make_car(name="A", default_price=Decimal("500"))
        car_b = await make_car(name="B", default_price=Decimal("700"))
        quote = await QuoteService(session, auth).create_quote(
            QuoteCreate(client_name="Jane", selected_cars=[car_a.id, car_b.id])
        )
        await session.commit()
        orphan_line_id = quote.lines[0].id

        async with session_factory() as other:
            await CarCatalogService(other, auth).delete_car(car_a.id)
            await other.commit()

        async with session_factory() as fresh:
            updated = await QuoteService(fresh, auth).update_quote(
                quote.id,
                QuoteUpdate(cars=[QuoteLineUpdate(
                    id=orphan_line_id,
                    custom_price=Decimal("450"),
                    custom_km=200,
                    custom_extra_km=Decimal("2.50"),
                    custom_deposit=Decimal("3000"),
                )]),
            )

            orphan = next(line for line in updated.lines if line.id == orphan_line_id)
            assert orphan.car_id is None
            assert orphan.custom_price == Decimal("450")
            assert updated.total_amount == Decimal("1150")

    @pytest.mark.asyncio
    async def test_unknown_line_id(self, service, two_car_quote):
        quote, _, _ = await two_car_quote()

        with pytest.raises(ValidationError):
            await service.update_quote(
                quote.id,
                QuoteUpdate(cars=[QuoteLineUpdate(
                    id=9999,
                    custom_price=Decimal("1"),
                    custom_km=0,
                    custom_extra_km=Decimal("0"),
                    custom_deposit=Decimal("0"),
                )]),
            )

    def test_line_needs_id_or_car_id(self):
        with pytest.raises(PydanticValidationError):
            QuoteLineUpdate(
                custom_price=Decimal("1"),
                custom_km=0,
                custom_extra_km=Decimal("0"),
                custom_deposit=Decimal("0"),
            )


class TestQuoteLifecycle:
    """Tests for status changes, listing and deletion."""

    @pytest.mark.asyncio
    async def test_any_status_transition(self, session, auth, make_car):
        """sent then back to draft both succeed."""
        car = await make_car()
        service = QuoteService(session, auth)
        quote = await service.create_quote(QuoteCreate(client_name="Jane", selected_cars=[car.id]))

        await service.set_status(quote.id, QuoteStatus.SENT)
        result = await service.set_status(quote.id, QuoteStatus.DRAFT)

        assert result.status == QuoteStatus.DRAFT

    @pytest.mark.asyncio
    async def test_set_status_missing_quote(self, session, auth):
        with pytest.raises(NotFoundError):
            await QuoteService(session, auth).set_status(1, QuoteStatus.SENT)

    @pytest.mark.asyncio
    async def test_list_search_and_status(self, session, auth, make_car):
        car = await make_car()
        service = QuoteService(session, auth)
        await service.create_quote(QuoteCreate(client_name="Alice Martin", destination="Nice", selected_cars=[car.id]))
        bob = await service.create_quote(QuoteCreate(client_name="Bob Stone", selected_cars=[car.id]))
        await service.set_status(bob.id, QuoteStatus.CONFIRMED)

        by_name, total = await service.list_quotes(search="alice")
        assert total == 1
        assert by_name[0].client_name == "Alice Martin"

        by_destination, _ = await service.list_quotes(search="NICE")
        assert [q.client_name for q in by_destination] == ["Alice Martin"]

        by_number, _ = await service.list_quotes(search=bob.quote_number)
        assert [q.id for q in by_number] == [bob.id]

        confirmed, total = await service.list_quotes(status=QuoteStatus.CONFIRMED)
        assert total == 1
        assert confirmed[0].id == bob.id

        everything, total = await service.list_quotes(limit=1)
        assert total == 2
        assert len(everything) == 1

    @pytest.mark.asyncio
    async def test_delete_removes_lines(self, session, auth, make_car):
        car = await make_car()
        service = QuoteService(session, auth)
        quote = await service.create_quote(QuoteCreate(client_name="Jane", selected_cars=[car.id]))

        await service.delete_quote(quote.id)

        assert (await session.execute(select(func.count(QuoteCar.id)))).scalar_one() == 0
        with pytest.raises(NotFoundError):
            await service.get_quote(quote.id)

    @pytest.mark.asyncio
    async def test_bulk_delete(self, session, auth, make_car):
        car = await make_car()
        service = QuoteService(session, auth)
        ids = [
            (await service.create_quote(QuoteCreate(client_name=f"C{i}", selected_cars=[car.id]))).id
            for i in range(3)
        ]

        deleted = await service.bulk_delete(ids[:2] + [9999])

        assert deleted == 2
        remaining, total = await service.list_quotes()
        assert total == 1
        assert remaining[0].id == ids[2]

    @pytest.mark.asyncio
    async def test_bulk_delete_requires_ids(self, session, auth):
        with pytest.raises(ValidationError):
            await QuoteService(session, auth).bulk_delete([])
