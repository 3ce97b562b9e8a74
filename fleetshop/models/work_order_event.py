"""Append-only history of a work order: transitions, reassignments, notes."""

from __future__ import annotations

from sqlalchemy import String, Integer, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleetshop.models.base import Base, ULIDMixin


class WorkOrderEvent(Base, ULIDMixin):
    __tablename__ = "work_order_events"

    work_order_id: Mapped[str] = mapped_column(String(26), ForeignKey("work_orders.id"), index=True)
    seq: Mapped[int] = mapped_column(Integer)
    event_type: Mapped[str] = mapped_column(String(60))
    from_label: Mapped[str] = mapped_column(String(60), default="")
    to_label: Mapped[str] = mapped_column(String(60), default="")
    status: Mapped[str] = mapped_column(String(40), default="")
    note: Mapped[str] = mapped_column(Text, default="")
    department: Mapped[str] = mapped_column(String(40), default="")  # observation tag
    actor_id: Mapped[str] = mapped_column(String(26), default="")
    actor_name: Mapped[str] = mapped_column(String(200), default="")

    work_order = relationship("WorkOrder", back_populates="events")
