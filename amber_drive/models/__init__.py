"""
Data models for Amber Drive admin.

SQLAlchemy ORM models for:
- Admin accounts
- Car catalog
- Quotes and their per-car pricing lines
"""

from amber_drive.models.user import AdminUser

from amber_drive.models.car import (
    Car,
    CarCategory,
    CarStatus,
)

from amber_drive.models.quote import (
    Quote,
    QuoteCar,
    QuoteStatus,
)

__all__ = [
    # Users
    "AdminUser",
    # Catalog
    "Car",
    "CarCategory",
    "CarStatus",
    # Quotes
    "Quote",
    "QuoteCar",
    "QuoteStatus",
]
