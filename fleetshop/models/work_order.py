"""Work order (ordem de serviço) model, tracked across department queues."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import String, Integer, Text, Date, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetshop.models.base import Base, ULIDMixin, utcnow


class WorkOrder(Base, ULIDMixin):
    __tablename__ = "work_orders"

    number: Mapped[str] = mapped_column(String(20), unique=True, index=True)  # OS-YYNNNN
    order_date: Mapped[date] = mapped_column(Date, default=lambda: utcnow().date())
    vehicle_id: Mapped[str] = mapped_column(String(26), default="")
    vehicle_info: Mapped[str] = mapped_column(String(200), default="")
    requester_id: Mapped[str] = mapped_column(String(26), default="")
    requester_info: Mapped[str] = mapped_column(String(200), default="")
    mechanic_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)
    mechanic_info: Mapped[str] = mapped_column(String(200), default="")  # "Name (id)"
    priority: Mapped[str] = mapped_column(String(20), default="Média")
    status: Mapped[str] = mapped_column(String(40), index=True)
    current_km: Mapped[str] = mapped_column(String(20), default="")
    reported_defects: Mapped[str] = mapped_column(Text, default="")
    parts_services: Mapped[str] = mapped_column(Text, default="")
    warehouse_notes: Mapped[str] = mapped_column(Text, default="")
    purchasing_notes: Mapped[str] = mapped_column(Text, default="")
    return_notes: Mapped[str] = mapped_column(Text, default="")
    execution_order: Mapped[int | None] = mapped_column(Integer, nullable=True, default=None)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    events = relationship(
        "WorkOrderEvent",
        back_populates="work_order",
        order_by="WorkOrderEvent.seq",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
