"""
Car catalog management service.

Handles CRUD, filtering and bulk status changes for the rental fleet.
"""

from datetime import datetime
from typing import Literal

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from amber_drive.exceptions import ValidationError, NotFoundError
from amber_drive.models.car import Car, CarCategory, CarStatus
from amber_drive.models.quote import QuoteCar
from amber_drive.schemas import CarCreate, CarUpdate
from amber_drive.services.auth_service import AuthContext, require_auth
from amber_drive.utils.logging import ServiceLogger, audit_logger
from amber_drive.utils.storage import ImageStorage, image_storage

BulkAction = Literal["archive", "restore", "delete"]


class CarCatalogService:
    """
    Service for managing the car catalog.

    Provides:
    - CRUD operations for cars, including the stored image reference
    - Filtered listing and brand facets
    - Bulk archive, restore and delete
    """

    def __init__(
        self,
        session: AsyncSession,
        auth: AuthContext | None,
        storage: ImageStorage | None = None,
    ):
        self.session = session
        self.auth = require_auth(auth)
        self.storage = storage or image_storage
        self.logger = ServiceLogger("catalog")

    async def get_car(self, car_id: int) -> Car:
        """Get a car by ID."""
        car = await self.session.get(Car, car_id)
        if not car:
            raise NotFoundError("Car", car_id)
        return car

    async def list_cars(
        self,
        status: CarStatus | None = None,
        brand: str | None = None,
        category: CarCategory | None = None,
        search: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[Car], int]:
        """
        List cars with filters.

        Args:
            status: Exact status; when omitted archived cars are excluded
            brand: Exact brand
            category: Exact category
            search: Contains match over name, brand and description
            limit: Maximum results
            offset: Pagination offset

        Returns:
            Tuple of (cars list, total count)
        """
        conditions = []

        if status:
            conditions.append(Car.status == status)
        else:
            conditions.append(Car.status != CarStatus.ARCHIVED)

        if search:
            search_pattern = f"%{search}%"
            conditions.append(
                or_(
                    Car.name.ilike(search_pattern),
                    Car.brand.ilike(search_pattern),
                    Car.description.ilike(search_pattern),
                )
            )

        if brand:
            conditions.append(Car.brand == brand)

        if category:
            conditions.append(Car.category == category)

        count_query = select(func.count(Car.id)).where(and_(*conditions))
        total = (await self.session.execute(count_query)).scalar_one()

        result = await self.session.execute(
            select(Car)
            .where(and_(*conditions))
            .order_by(Car.created_at.desc(), Car.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total

    async def list_active_cars(self) -> list[Car]:
        """All active cars, in ID order."""
        result = await self.session.execute(
            select(Car).where(Car.status == CarStatus.ACTIVE).order_by(Car.id)
        )
        return list(result.scalars().all())

    async def list_brands(self) -> list[str]:
        """Distinct brands of non-archived cars, sorted."""
        result = await self.session.execute(
            select(Car.brand)
            .where(Car.status != CarStatus.ARCHIVED)
            .distinct()
            .order_by(Car.brand)
        )
        return list(result.scalars().all())

    async def create_car(
        self,
        data: CarCreate,
        image_name: str | None = None,
        image_content: bytes | None = None,
    ) -> Car:
        """
        Create a new car in the catalog.

        Args:
            data: Validated car fields
            image_name: Original file name of an uploaded image
            image_content: Uploaded image bytes

        Returns:
            Created Car instance
        """
        with self.logger.operation("create_car", user_id=self.auth.user_id, name=data.name) as op:
            image = ""
            if image_content:
                image = self.storage.save_in(self.session, image_name or "", image_content)

            car = Car(image=image, **data.model_dump())
            self.session.add(car)
            await self.session.flush()

            op["car_id"] = car.id
        return car

    async def update_car(
        self,
        car_id: int,
        data: CarUpdate,
        image_name: str | None = None,
        image_content: bytes | None = None,
    ) -> Car:
        """
        Update a car's attributes.

        Only fields set on `data` are written. A new image replaces the old
        one; the old file is removed once the transaction commits.
        """
        with self.logger.operation("update_car", user_id=self.auth.user_id, car_id=car_id):
            car = await self.get_car(car_id)

            for key, value in data.model_dump(exclude_unset=True).items():
                if value is None and key != "description":
                    continue
                setattr(car, key, value)

            if image_content:
                self.storage.discard_in(self.session, car.image)
                car.image = self.storage.save_in(self.session, image_name or "", image_content)

            car.updated_at = datetime.utcnow()
            await self.session.flush()
        return car

    async def delete_car(self, car_id: int) -> None:
        """
        Hard-delete a car.

        Quote lines that reference it are kept with car_id set to NULL.
        """
        with self.logger.operation("delete_car", user_id=self.auth.user_id, car_id=car_id):
            car = await self.get_car(car_id)
            await self._delete_cars([car])

    async def bulk_action(self, ids: list[int], action: BulkAction) -> int:
        """
        Apply archive/restore/delete to many cars.

        Returns:
            Number of cars affected
        """
        if not ids:
            raise ValidationError("No IDs provided")
        if action not in ("archive", "restore", "delete"):
            raise ValidationError("Invalid action", action=action)

        with self.logger.operation(
            "bulk_action", user_id=self.auth.user_id, action=action, requested=len(ids),
        ) as op:
            result = await self.session.execute(select(Car).where(Car.id.in_(ids)))
            cars = list(result.scalars().all())

            if action == "delete":
                await self._delete_cars(cars)
            else:
                new_status = CarStatus.ARCHIVED if action == "archive" else CarStatus.ACTIVE
                now = datetime.utcnow()
                for car in cars:
                    car.status = new_status
                    car.updated_at = now
                await self.session.flush()

            op["affected"] = len(cars)
        return len(cars)

    async def _delete_cars(self, cars: list[Car]) -> None:
        if not cars:
            return
        ids = [car.id for car in cars]

        await self.session.execute(
            update(QuoteCar)
            .where(QuoteCar.car_id.in_(ids))
            .values(car_id=None)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(
            delete(Car)
            .where(Car.id.in_(ids))
            .execution_options(synchronize_session="fetch")
        )
        await self.session.flush()

        for car in cars:
            self.storage.discard_in(self.session, car.image)
            audit_logger.record("delete", "car", car.id, actor_id=self.auth.user_id, name=car.display_name)
