"""
Quote models.

A quote is a point-in-time price offer for one client. Each line snapshots
the pricing of one car when the quote was built or last edited.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Date, Enum as SQLEnum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from amber_drive.database.base import Base, enum_values
from amber_drive.models.car import Car


class QuoteStatus(str, Enum):
    """Quote lifecycle status. Any status may move to any other."""
    DRAFT = "draft"
    SENT = "sent"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Quote(Base):
    """
    Quote header.

    total_amount is derived: it always equals the sum of the lines'
    custom_price and is written together with them.
    """

    __tablename__ = "quotes"

    quote_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    # Client
    client_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    client_email: Mapped[str | None] = mapped_column(String(255))
    destination: Mapped[str | None] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text)

    quote_date: Mapped[date] = mapped_column(Date, default=date.today)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    status: Mapped[QuoteStatus] = mapped_column(
        SQLEnum(QuoteStatus, name="quote_status", values_callable=enum_values),
        default=QuoteStatus.DRAFT,
        index=True,
    )

    lines: Mapped[list["QuoteCar"]] = relationship(
        "QuoteCar",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteCar.id",
        lazy="selectin",
    )


class QuoteCar(Base):
    """
    Quote line: one car offered in a quote with its own pricing.

    car_id is nulled rather than cascaded when the car is deleted, so the
    line (and car_name) outlive the catalog entry.
    """

    __tablename__ = "quote_cars"

    quote_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    car_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("cars.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    car_name: Mapped[str] = mapped_column(String(255), default="")

    # Pricing snapshot
    custom_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    custom_km: Mapped[int] = mapped_column(Integer, default=0)
    custom_extra_km: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    custom_deposit: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    quote: Mapped["Quote"] = relationship("Quote", back_populates="lines")
    car: Mapped["Car | None"] = relationship("Car", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("quote_id", "car_id", name="uq_quote_car"),
    )
