"""
Car catalog API routes.

Create and update take multipart form data so an image can travel with the
car fields.
"""

from decimal import Decimal

from fastapi import APIRouter, File, Form, Query, UploadFile
from pydantic import ValidationError as PydanticValidationError

from amber_drive.api.dependencies import AuthDep, DatabaseDep
from amber_drive.exceptions import ValidationError
from amber_drive.models.car import CarCategory, CarStatus
from amber_drive.schemas import (
    CarBulkAction, CarCreate, CarListResponse, CarResponse, CarUpdate,
)
from amber_drive.services.catalog_service import CarCatalogService

router = APIRouter()


def _build(schema, fields: dict):
    try:
        return schema(**fields)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationError(f"{location}: {first.get('msg')}" if location else first.get("msg")) from e


async def _read_image(image: UploadFile | None) -> tuple[str | None, bytes | None]:
    if image is None or not image.filename:
        return None, None
    return image.filename, await image.read()


@router.get("", response_model=CarListResponse)
async def list_cars(
    db: DatabaseDep,
    auth: AuthDep,
    status: CarStatus | None = None,
    brand: str | None = None,
    category: CarCategory | None = None,
    search: str | None = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """List cars; archived cars are hidden unless requested by status."""
    service = CarCatalogService(db, auth)
    cars, total = await service.list_cars(
        status=status,
        brand=brand,
        category=category,
        search=search,
        limit=limit,
        offset=offset,
    )

    return {
        "items": cars,
        "brands": await service.list_brands(),
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.post("", response_model=CarResponse, status_code=201)
async def create_car(
    db: DatabaseDep,
    auth: AuthDep,
    name: str = Form(...),
    brand: str = Form(...),
    category: str = Form(...),
    default_price: Decimal = Form(Decimal("0")),
    default_km: int = Form(0),
    default_extra_km: Decimal = Form(Decimal("0")),
    default_deposit: Decimal = Form(Decimal("0")),
    description: str | None = Form(None),
    status: str = Form(CarStatus.ACTIVE.value),
    image: UploadFile | None = File(None),
):
    """Add a car to the catalog, optionally with an image."""
    data = _build(CarCreate, {
        "name": name,
        "brand": brand,
        "category": category,
        "default_price": default_price,
        "default_km": default_km,
        "default_extra_km": default_extra_km,
        "default_deposit": default_deposit,
        "description": description,
        "status": status,
    })
    image_name, image_content = await _read_image(image)

    service = CarCatalogService(db, auth)
    return await service.create_car(data, image_name=image_name, image_content=image_content)


# Declared before /{car_id} so the literal path wins
@router.post("/bulk")
async def bulk_car_action(body: CarBulkAction, db: DatabaseDep, auth: AuthDep):
    """Archive, restore or delete several cars at once."""
    affected = await CarCatalogService(db, auth).bulk_action(body.ids, body.action)
    return {"success": True, "affected": affected}


@router.get("/{car_id}", response_model=CarResponse)
async def get_car(car_id: int, db: DatabaseDep, auth: AuthDep):
    """Get car details."""
    return await CarCatalogService(db, auth).get_car(car_id)


@router.put("/{car_id}", response_model=CarResponse)
async def update_car(
    car_id: int,
    db: DatabaseDep,
    auth: AuthDep,
    name: str | None = Form(None),
    brand: str | None = Form(None),
    category: str | None = Form(None),
    default_price: Decimal | None = Form(None),
    default_km: int | None = Form(None),
    default_extra_km: Decimal | None = Form(None),
    default_deposit: Decimal | None = Form(None),
    description: str | None = Form(None),
    status: str | None = Form(None),
    image: UploadFile | None = File(None),
):
    """Update a car; only submitted fields change. A new image replaces the old one."""
    submitted = {
        "name": name,
        "brand": brand,
        "category": category,
        "default_price": default_price,
        "default_km": default_km,
        "default_extra_km": default_extra_km,
        "default_deposit": default_deposit,
        "description": description,
        "status": status,
    }
    data = _build(CarUpdate, {k: v for k, v in submitted.items() if v is not None})
    image_name, image_content = await _read_image(image)

    service = CarCatalogService(db, auth)
    return await service.update_car(car_id, data, image_name=image_name, image_content=image_content)


@router.delete("/{car_id}")
async def delete_car(car_id: int, db: DatabaseDep, auth: AuthDep):
    """Delete a car; quotes that used it keep their lines."""
    await CarCatalogService(db, auth).delete_car(car_id)
    return {"success": True}
