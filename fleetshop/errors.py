"""Domain errors raised by the workflow, planning and inventory services."""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for work-order domain errors."""


class WorkOrderNotFoundError(WorkflowError):
    def __init__(self, order_id: str):
        super().__init__(f"Work order not found: {order_id}")
        self.order_id = order_id


class IllegalTransitionError(WorkflowError):
    """The requested transition is not allowed from the order's current state."""


class PlanningValidationError(WorkflowError):
    """A drag-and-drop request refers to missing orders, indices or mechanics."""


class RecordNotFoundError(WorkflowError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class InventoryError(WorkflowError):
    """A stock movement would leave the inventory inconsistent."""


class InsufficientStockError(InventoryError):
    def __init__(self, description: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {description}: {available} available, {requested} requested"
        )
        self.available = available
        self.requested = requested
