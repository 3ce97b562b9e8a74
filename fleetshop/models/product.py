"""Parts inventory: products and the stock entries and exits that move them."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, Float, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from fleetshop.models.base import Base, ULIDMixin, utcnow


class Product(Base, ULIDMixin):
    __tablename__ = "products"

    description: Mapped[str] = mapped_column(String(200), index=True)
    category: Mapped[str] = mapped_column(String(100), default="")
    unit: Mapped[str] = mapped_column(String(20), default="UN")
    location: Mapped[str] = mapped_column(String(100), default="")
    stock: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class StockEntry(Base, ULIDMixin):
    """Goods received. Description and responsible name are snapshots."""

    __tablename__ = "stock_entries"

    product_id: Mapped[str] = mapped_column(String(26), index=True)
    product_description: Mapped[str] = mapped_column(String(200), default="")
    quantity: Mapped[int] = mapped_column(Integer)
    responsible_id: Mapped[str] = mapped_column(String(26), default="")
    responsible_name: Mapped[str] = mapped_column(String(200), default="")
    entered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class StockExit(Base, ULIDMixin):
    """Parts issued to a vehicle, optionally against a work order."""

    __tablename__ = "stock_exits"

    product_id: Mapped[str] = mapped_column(String(26), index=True)
    product_description: Mapped[str] = mapped_column(String(200), default="")
    category: Mapped[str] = mapped_column(String(100), default="")
    quantity: Mapped[int] = mapped_column(Integer)
    unit_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    responsible_id: Mapped[str] = mapped_column(String(26), default="")
    responsible_name: Mapped[str] = mapped_column(String(200), default="")
    vehicle_id: Mapped[str] = mapped_column(String(26), index=True)
    vehicle_plate: Mapped[str] = mapped_column(String(10), default="")
    vehicle_model: Mapped[str] = mapped_column(String(100), default="")
    work_order_id: Mapped[str | None] = mapped_column(String(26), nullable=True)
    note: Mapped[str] = mapped_column(Text, default="")
    exited_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
