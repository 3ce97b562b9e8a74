"""Oil change and odometer records per vehicle."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from fleetshop.models.base import Base, ULIDMixin, utcnow

OIL_CHANGE = "Troca de Óleo"
KM_UPDATE = "Atualização de Km"


class OilChange(Base, ULIDMixin):
    __tablename__ = "oil_changes"

    vehicle_id: Mapped[str] = mapped_column(String(26), index=True)
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    previous_km: Mapped[int] = mapped_column(Integer, default=0)
    current_km: Mapped[int] = mapped_column(Integer, default=0)
    next_change_km: Mapped[int] = mapped_column(Integer, default=0)
    service_type: Mapped[str] = mapped_column(String(40), default=OIL_CHANGE)  # OIL_CHANGE | KM_UPDATE
    note: Mapped[str] = mapped_column(Text, default="")
