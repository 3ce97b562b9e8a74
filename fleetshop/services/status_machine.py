"""Work-order status machine: statuses, department queues, legal transitions.

Queue membership is derived from the status. A "Serviço Externo" order can be
entered from any department, so its queue is resolved from its history: the
most recent department it was routed to, else the most recent department it
left, else the workshop.

Every operator action is a ``TransitionKind`` and ``TRANSITIONS`` is the only
place that says which departments an action may start from and which statuses
it may land on.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Protocol, Sequence

from fleetshop.errors import IllegalTransitionError


class WorkOrderStatus(str, Enum):
    AWAITING_MECHANIC = "Aguardando Mecânico"
    SERVICE_QUEUE = "Fila de Serviço"
    IN_SERVICE = "Em Serviço"
    AWAITING_APPROVAL = "Aguardando aprovação"
    IN_APPROVAL = "Em Aprovação"
    UNDER_REVIEW = "Em Análise"
    AWAITING_ORDER = "Aguardando OS"
    AWAITING_SUPPLIER = "Aguardando Fornecedor"
    BUY_EXTERNALLY = "Comprar na Rua"
    EXTERNAL_SERVICE = "Serviço Externo"
    FINALIZED = "Finalizado"


# Legacy rows may still carry "Concluída"; planning treats it as closed.
CLOSED_STATUS_LABELS = frozenset({WorkOrderStatus.FINALIZED.value, "Concluída"})

ACTIVE_STATUSES = tuple(s for s in WorkOrderStatus if s is not WorkOrderStatus.FINALIZED)


class Department(str, Enum):
    WORKSHOP = "Oficina"
    WAREHOUSE = "Almoxarifado"
    PURCHASING = "Compras"
    FINALIZED = "Finalizados"

    @property
    def slug(self) -> str:
        """Tab key used in URLs and permission submodules."""
        return _DEPARTMENT_SLUGS[self]

    @classmethod
    def from_slug(cls, slug: str) -> Department:
        for dept, dept_slug in _DEPARTMENT_SLUGS.items():
            if dept_slug == slug:
                return dept
        raise ValueError(f"Unknown department tab: {slug}")


_DEPARTMENT_SLUGS = {
    Department.WORKSHOP: "oficina",
    Department.WAREHOUSE: "almoxarifado",
    Department.PURCHASING: "compras",
    Department.FINALIZED: "finalizados",
}

ROUTABLE_DEPARTMENTS = (Department.WORKSHOP, Department.WAREHOUSE, Department.PURCHASING)
_ROUTABLE_LABELS = frozenset(d.value for d in ROUTABLE_DEPARTMENTS)

DEPARTMENT_STATUSES: dict[Department, tuple[WorkOrderStatus, ...]] = {
    Department.WORKSHOP: (
        WorkOrderStatus.AWAITING_MECHANIC,
        WorkOrderStatus.IN_SERVICE,
        WorkOrderStatus.AWAITING_APPROVAL,
        WorkOrderStatus.SERVICE_QUEUE,
    ),
    Department.WAREHOUSE: (
        WorkOrderStatus.UNDER_REVIEW,
        WorkOrderStatus.AWAITING_ORDER,
        WorkOrderStatus.AWAITING_SUPPLIER,
        WorkOrderStatus.BUY_EXTERNALLY,
    ),
    Department.PURCHASING: (WorkOrderStatus.IN_APPROVAL,),
    Department.FINALIZED: (WorkOrderStatus.FINALIZED,),
}

_STATUS_DEPARTMENT = {
    status: dept
    for dept, statuses in DEPARTMENT_STATUSES.items()
    for status in statuses
}


class HistoryLike(Protocol):
    from_label: str
    to_label: str


@dataclass(frozen=True)
class HistoryEntry:
    """A history record about to be appended to a work order."""

    event_type: str
    from_label: str = ""
    to_label: str = ""
    status: str = ""
    note: str = ""
    department: str = ""
    actor_id: str = ""
    actor_name: str = ""


def parse_status(value: str) -> WorkOrderStatus | None:
    try:
        return WorkOrderStatus(value)
    except ValueError:
        return None


def resolve_department(history: Sequence[HistoryLike]) -> Department:
    """Department an external-service order belongs to, from its history."""
    for entry in reversed(history):
        if entry.to_label in _ROUTABLE_LABELS:
            return Department(entry.to_label)
    for entry in reversed(history):
        if entry.from_label in _ROUTABLE_LABELS:
            return Department(entry.from_label)
    return Department.WORKSHOP


def department_of(status: str, history: Sequence[HistoryLike] = ()) -> Department | None:
    """Queue a work order is listed in; None for unknown legacy statuses."""
    if status == WorkOrderStatus.EXTERNAL_SERVICE.value:
        return resolve_department(history)
    parsed = parse_status(status)
    if parsed is None:
        return None
    return _STATUS_DEPARTMENT.get(parsed)


def in_queue(order, department: Department) -> bool:
    return department_of(order.status, order.events) is department


def filter_queue(orders: Iterable, department: Department) -> list:
    """Orders (anything with ``status`` and ``events``) listed in a department tab."""
    return [o for o in orders if in_queue(o, department)]


# ── Transitions ──────────────────────────────────────────


class TransitionKind(str, Enum):
    MOVE_STATUS = "move_status"
    SEND_TO_WAREHOUSE = "send_to_warehouse"
    SEND_TO_PURCHASING = "send_to_purchasing"
    RETURN_TO_WORKSHOP = "return_to_workshop"
    RETURN_TO_WAREHOUSE = "return_to_warehouse"
    REOPEN = "reopen"
    SEND_TO_EXTERNAL_SERVICE = "send_to_external_service"


@dataclass(frozen=True)
class TransitionRule:
    sources: frozenset[Department]
    targets: tuple[WorkOrderStatus, ...]
    default_target: WorkOrderStatus | None
    event_type: str
    # History "from" is the source department instead of the old status.
    records_source: bool = False
    # History "to" is this department instead of the new status.
    to_department: Department | None = None
    # History "to" is the department the new status is queued in.
    to_target_department: bool = False
    note_field: str | None = None


TRANSITIONS: dict[TransitionKind, TransitionRule] = {
    TransitionKind.MOVE_STATUS: TransitionRule(
        sources=frozenset({Department.WORKSHOP}),
        targets=(
            WorkOrderStatus.AWAITING_MECHANIC,
            WorkOrderStatus.SERVICE_QUEUE,
            WorkOrderStatus.IN_SERVICE,
            WorkOrderStatus.FINALIZED,
        ),
        default_target=None,
        event_type="Mudança de Status",
    ),
    TransitionKind.SEND_TO_WAREHOUSE: TransitionRule(
        sources=frozenset({Department.WORKSHOP}),
        targets=(WorkOrderStatus.UNDER_REVIEW,),
        default_target=WorkOrderStatus.UNDER_REVIEW,
        event_type="Envio para Almoxarifado",
        records_source=True,
        to_department=Department.WAREHOUSE,
        note_field="warehouse_notes",
    ),
    TransitionKind.SEND_TO_PURCHASING: TransitionRule(
        sources=frozenset({Department.WAREHOUSE}),
        targets=(WorkOrderStatus.IN_APPROVAL,),
        default_target=WorkOrderStatus.IN_APPROVAL,
        event_type="Envio para Compras",
        records_source=True,
        to_department=Department.PURCHASING,
        note_field="purchasing_notes",
    ),
    TransitionKind.RETURN_TO_WORKSHOP: TransitionRule(
        sources=frozenset({Department.WAREHOUSE, Department.PURCHASING}),
        targets=(WorkOrderStatus.SERVICE_QUEUE, WorkOrderStatus.EXTERNAL_SERVICE),
        default_target=WorkOrderStatus.SERVICE_QUEUE,
        event_type="Retorno para Oficina",
        records_source=True,
        to_department=Department.WORKSHOP,
        note_field="return_notes",
    ),
    TransitionKind.RETURN_TO_WAREHOUSE: TransitionRule(
        sources=frozenset({Department.PURCHASING}),
        targets=(
            WorkOrderStatus.AWAITING_ORDER,
            WorkOrderStatus.AWAITING_SUPPLIER,
            WorkOrderStatus.EXTERNAL_SERVICE,
            WorkOrderStatus.BUY_EXTERNALLY,
        ),
        default_target=WorkOrderStatus.AWAITING_ORDER,
        event_type="Retorno para Almoxarifado",
        records_source=True,
        to_department=Department.WAREHOUSE,
    ),
    TransitionKind.REOPEN: TransitionRule(
        sources=frozenset({Department.FINALIZED}),
        targets=ACTIVE_STATUSES,
        default_target=WorkOrderStatus.AWAITING_MECHANIC,
        event_type="Reabertura",
        to_target_department=True,
    ),
    TransitionKind.SEND_TO_EXTERNAL_SERVICE: TransitionRule(
        sources=frozenset(ROUTABLE_DEPARTMENTS),
        targets=(WorkOrderStatus.EXTERNAL_SERVICE,),
        default_target=WorkOrderStatus.EXTERNAL_SERVICE,
        event_type="Envio para Serviço Externo",
        records_source=True,
    ),
}


@dataclass(frozen=True)
class PlannedTransition:
    kind: TransitionKind
    from_status: str
    to_status: WorkOrderStatus
    source: Department
    entry: HistoryEntry
    note_field: str | None = None
    note: str = ""


def plan_transition(
    kind: TransitionKind,
    status: str,
    history: Sequence[HistoryLike] = (),
    target: WorkOrderStatus | str | None = None,
    note: str = "",
    actor_id: str = "",
    actor_name: str = "",
) -> PlannedTransition:
    """Check a transition against ``TRANSITIONS`` and build its history entry.

    Raises IllegalTransitionError when the order's current department is not
    a source of ``kind``, the target is not one of its targets, or the order
    is already in the target status.
    """
    rule = TRANSITIONS[kind]
    source = department_of(status, history)
    if source is None or source not in rule.sources:
        raise IllegalTransitionError(f"{kind.value} is not allowed from status {status!r}")

    if target is None:
        target = rule.default_target
        if target is None:
            raise IllegalTransitionError(f"{kind.value} requires a target status")
    target_status = parse_status(target.value if isinstance(target, WorkOrderStatus) else target)
    if target_status is None:
        raise IllegalTransitionError(f"Unknown status: {target!r}")
    if target_status not in rule.targets:
        raise IllegalTransitionError(
            f"{kind.value} cannot move an order to {target_status.value!r}"
        )
    if target_status.value == status:
        raise IllegalTransitionError(f"Order is already {status!r}")

    from_label = source.value if rule.records_source else status
    if rule.to_department:
        to_label = rule.to_department.value
    elif rule.to_target_department:
        to_label = department_of(target_status.value, history).value
    else:
        to_label = target_status.value
    if not note and not rule.records_source:
        note = f'Status alterado de "{status}" para "{target_status.value}"'

    entry = HistoryEntry(
        event_type=rule.event_type,
        from_label=from_label,
        to_label=to_label,
        status=target_status.value,
        note=note,
        actor_id=actor_id,
        actor_name=actor_name,
    )
    return PlannedTransition(
        kind=kind,
        from_status=status,
        to_status=target_status,
        source=source,
        entry=entry,
        note_field=rule.note_field,
        note=note,
    )


def is_legal(
    kind: TransitionKind,
    status: str,
    history: Sequence[HistoryLike] = (),
    target: WorkOrderStatus | str | None = None,
) -> bool:
    try:
        plan_transition(kind, status, history, target)
    except IllegalTransitionError:
        return False
    return True


def available_transitions(status: str, history: Sequence[HistoryLike] = ()) -> list[TransitionKind]:
    """Actions an operator can start from the order's current department."""
    source = department_of(status, history)
    if source is None:
        return []
    return [kind for kind, rule in TRANSITIONS.items() if source in rule.sources]
