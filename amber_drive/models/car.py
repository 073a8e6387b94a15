"""
Car catalog model.

Holds the rental fleet with the default pricing copied into new quotes.
"""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Enum as SQLEnum, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from amber_drive.database.base import Base, enum_values


class CarCategory(str, Enum):
    """Body style categories offered in the fleet."""
    CABRIO = "Cabrio"
    COUPE = "Coupe"
    SUV = "SUV"
    SEDAN = "Sedan"
    VAN = "Van"


class CarStatus(str, Enum):
    """Catalog lifecycle status."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"  # Hidden from quoting, kept for historical quotes


class Car(Base):
    """
    Rental car catalog entry.

    Default pricing is only a template: quotes snapshot it into their own
    lines, so editing a car never changes an issued quote.
    """

    __tablename__ = "cars"

    # Identification
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    brand: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    category: Mapped[CarCategory] = mapped_column(
        SQLEnum(CarCategory, name="car_category", values_callable=enum_values),
        nullable=False,
    )
    image: Mapped[str] = mapped_column(String(500), default="")
    description: Mapped[str | None] = mapped_column(Text)

    # Default pricing
    default_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    default_km: Mapped[int] = mapped_column(Integer, default=0)
    default_extra_km: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    default_deposit: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    # Status
    status: Mapped[CarStatus] = mapped_column(
        SQLEnum(CarStatus, name="car_status", values_callable=enum_values),
        default=CarStatus.ACTIVE,
        index=True,
    )

    @property
    def display_name(self) -> str:
        if self.brand and not self.name.lower().startswith(self.brand.lower()):
            return f"{self.brand} {self.name}"
        return self.name
