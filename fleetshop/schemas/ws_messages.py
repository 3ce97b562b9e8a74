from __future__ import annotations
from typing import Any
from pydantic import BaseModel


class WSMessage(BaseModel):
    event: str  # planning_reloaded | error
    data: dict[str, Any] = {}
