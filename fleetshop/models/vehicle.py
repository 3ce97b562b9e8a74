"""Fleet vehicle registry, with the odometer fields oil changes keep current."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from fleetshop.models.base import Base, ULIDMixin, utcnow


class Vehicle(Base, ULIDMixin):
    __tablename__ = "vehicles"

    plate: Mapped[str] = mapped_column(String(10), unique=True, index=True)
    model: Mapped[str] = mapped_column(String(100), default="")
    brand: Mapped[str] = mapped_column(String(100), default="")
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    color: Mapped[str] = mapped_column(String(40), default="")
    vehicle_type: Mapped[str] = mapped_column(String(40), default="")
    chassis: Mapped[str] = mapped_column(String(40), default="")
    renavam: Mapped[str] = mapped_column(String(20), default="")
    fuel: Mapped[str] = mapped_column(String(30), default="")
    measurement: Mapped[str] = mapped_column(String(20), default="km")  # km | horímetro
    oil_change_interval_km: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="Ativo")
    department: Mapped[str] = mapped_column(String(100), default="")  # owning secretariat
    current_km: Mapped[int] = mapped_column(Integer, default=0)
    last_oil_change_km: Mapped[int] = mapped_column(Integer, default=0)
    next_oil_change_km: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    @property
    def label(self) -> str:
        """Display label stored on work orders, e.g. ``ABC-1234 Volvo FH``."""
        return " ".join(p for p in (self.plate, self.brand, self.model) if p)
