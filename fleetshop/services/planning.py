"""Mechanic planning board: per-mechanic work queues ordered by execution order.

Each mechanic's active orders (anything not closed) carry a dense 1..N
``execution_order``. The pure functions below compute new board snapshots for
loading, reordering and reassignment; ``PlanningSession`` applies a snapshot
locally first, persists the difference through the store, and reconciles with
a delayed reload (or an immediate one when persistence fails).

The order of mechanic cards is separate, cosmetic state kept per session and
never written to the store.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable, Iterable, Protocol, Sequence

from fleetshop.errors import PlanningValidationError
from fleetshop.services.notifications import Notification
from fleetshop.services.status_machine import CLOSED_STATUS_LABELS

logger = logging.getLogger(__name__)

_LABEL_NAME = re.compile(r"^(.*?)\s*\(")


def mechanic_label(name: str, mechanic_id: str) -> str:
    return f"{name} ({mechanic_id})"


def mechanic_name_from_label(label: str) -> str:
    """"João Silva (01H...)" -> "João Silva"; labels without an id pass through."""
    label = (label or "").strip()
    match = _LABEL_NAME.match(label)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return label or "Mecânico"


# ── Snapshot types ───────────────────────────────────────


@dataclass(frozen=True)
class PlannedOrder:
    id: str
    number: str
    status: str
    mechanic_id: str
    mechanic_info: str = ""
    vehicle_info: str = ""
    priority: str = ""
    execution_order: int | None = None

    @property
    def is_active(self) -> bool:
        return self.status not in CLOSED_STATUS_LABELS


@dataclass(frozen=True)
class MechanicQueue:
    id: str
    name: str
    orders: tuple[PlannedOrder, ...] = ()

    @property
    def active_orders(self) -> list[PlannedOrder]:
        return ordered_active(self.orders)


@dataclass(frozen=True)
class PlanningBoard:
    mechanics: tuple[MechanicQueue, ...] = ()

    def mechanic(self, mechanic_id: str) -> MechanicQueue | None:
        for queue in self.mechanics:
            if queue.id == mechanic_id:
                return queue
        return None

    def find_order(self, order_id: str) -> tuple[MechanicQueue, PlannedOrder] | None:
        for queue in self.mechanics:
            for order in queue.orders:
                if order.id == order_id:
                    return queue, order
        return None

    def with_queue(self, queue: MechanicQueue) -> PlanningBoard:
        return PlanningBoard(tuple(queue if q.id == queue.id else q for q in self.mechanics))


@dataclass(frozen=True)
class RankChange:
    order_id: str
    previous: int | None
    rank: int


# ── Ordering ─────────────────────────────────────────────


def number_suffix(number: str) -> int:
    """Numeric part of an order label: "OS-250010" -> 250010, "OS-2" -> 2."""
    digits = re.sub(r"\D", "", number or "")
    return int(digits) if digits else 0


def _has_rank(order: PlannedOrder) -> bool:
    return order.execution_order is not None and order.execution_order > 0


def queue_sort_key(order: PlannedOrder) -> tuple[int, int, int]:
    """Ranked orders first by rank, unranked after them by label number."""
    if _has_rank(order):
        return (0, order.execution_order, number_suffix(order.number))
    return (1, 0, number_suffix(order.number))


def active_orders(orders: Iterable[PlannedOrder]) -> list[PlannedOrder]:
    return [o for o in orders if o.is_active]


def ordered_active(orders: Iterable[PlannedOrder]) -> list[PlannedOrder]:
    return sorted(active_orders(orders), key=queue_sort_key)


def move_item(items: Sequence, old_index: int, new_index: int) -> list:
    moved = list(items)
    item = moved.pop(old_index)
    moved.insert(new_index, item)
    return moved


def _assign_ranks(orders: Sequence[PlannedOrder]) -> tuple[list[PlannedOrder], list[RankChange]]:
    ranked: list[PlannedOrder] = []
    changes: list[RankChange] = []
    for rank, order in enumerate(orders, start=1):
        if order.execution_order != rank:
            changes.append(RankChange(order.id, order.execution_order, rank))
            order = replace(order, execution_order=rank)
        ranked.append(order)
    return ranked, changes


def normalize_queue(orders: Iterable[PlannedOrder]) -> tuple[list[PlannedOrder], list[RankChange]]:
    """Drop closed orders, sort, and rank 1..N; changes hold only differing ranks."""
    return _assign_ranks(ordered_active(orders))


def normalize_board(board: PlanningBoard) -> tuple[PlanningBoard, list[RankChange]]:
    queues = []
    changes: list[RankChange] = []
    for queue in board.mechanics:
        ranked, queue_changes = normalize_queue(queue.orders)
        queues.append(replace(queue, orders=tuple(ranked)))
        changes.extend(queue_changes)
    return PlanningBoard(tuple(queues)), changes


def reorder_queue(
    board: PlanningBoard, mechanic_id: str, old_index: int, new_index: int,
) -> tuple[PlanningBoard, list[RankChange]]:
    """Move one order inside a mechanic's active list and re-rank the list."""
    queue = board.mechanic(mechanic_id)
    if queue is None:
        raise PlanningValidationError(f"Mechanic not found: {mechanic_id}")
    active = queue.active_orders
    for index in (old_index, new_index):
        if not 0 <= index < len(active):
            raise PlanningValidationError(
                f"Position {index} is outside {queue.name}'s queue of {len(active)}"
            )

    ranked, changes = _assign_ranks(move_item(active, old_index, new_index))
    closed = tuple(o for o in queue.orders if not o.is_active)
    return board.with_queue(replace(queue, orders=tuple(ranked) + closed)), changes


def reassign_order(
    board: PlanningBoard, order_id: str, to_mechanic_id: str,
) -> tuple[PlanningBoard, PlannedOrder]:
    """Take an order out of its mechanic's queue and append it to another's."""
    located = board.find_order(order_id)
    if located is None:
        raise PlanningValidationError(f"Order not found on the board: {order_id}")
    from_queue, order = located
    to_queue = board.mechanic(to_mechanic_id)
    if to_queue is None:
        raise PlanningValidationError(f"Mechanic not found: {to_mechanic_id}")
    if to_queue.id == from_queue.id:
        raise PlanningValidationError(f"Order {order.number} is already assigned to {to_queue.name}")

    # Unranked until the store reload places it in the new queue.
    moved = replace(
        order,
        mechanic_id=to_queue.id,
        mechanic_info=mechanic_label(to_queue.name, to_queue.id),
        execution_order=None,
    )
    new_from = replace(from_queue, orders=tuple(o for o in from_queue.orders if o.id != order_id))
    new_to = replace(to_queue, orders=to_queue.orders + (moved,))
    return board.with_queue(new_from).with_queue(new_to), moved


def default_mechanic_order(board: PlanningBoard) -> list[str]:
    """Most loaded mechanic first."""
    queues = sorted(board.mechanics, key=lambda q: (-len(q.active_orders), q.name.lower()))
    return [q.id for q in queues]


def move_mechanic(order: Sequence[str], mechanic_id: str, over_id: str) -> list[str]:
    try:
        old_index = list(order).index(mechanic_id)
        new_index = list(order).index(over_id)
    except ValueError:
        raise PlanningValidationError(f"Unknown mechanic card: {mechanic_id} -> {over_id}")
    return move_item(order, old_index, new_index)


# ── Batch outcome ────────────────────────────────────────


class Outcome(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


@dataclass(frozen=True)
class BatchResult:
    succeeded: int
    total: int

    @property
    def outcome(self) -> Outcome:
        if self.succeeded == self.total:
            return Outcome.SUCCESS
        if self.succeeded > 0:
            return Outcome.PARTIAL
        return Outcome.FAILURE


# ── Session ──────────────────────────────────────────────


class PlanningStore(Protocol):
    async def list_work_orders_grouped_by_mechanic(self) -> list[MechanicQueue]: ...

    async def update_work_order_execution_order(self, order_id: str, rank: int) -> bool: ...

    async def reassign_work_order_mechanic(
        self, order_id: str, mechanic_id: str, mechanic_label: str,
    ) -> bool: ...


ReloadListener = Callable[[PlanningBoard], Awaitable[None]]


class PlanningSession:
    """One operator's view of the planning board.

    ``board`` is replaced wholesale on every change. A reload from the store
    always wins over whatever optimistic snapshot is current.
    """

    def __init__(
        self,
        store: PlanningStore,
        reconcile_delay: float = 1.0,
        on_reload: ReloadListener | None = None,
    ):
        self._store = store
        self.reconcile_delay = reconcile_delay
        self._on_reload = on_reload
        self.board = PlanningBoard()
        self.mechanic_order: list[str] = []
        self.loaded = False
        self.last_normalization = BatchResult(0, 0)
        self._pending: asyncio.Task | None = None

    @property
    def pending_reload(self) -> asyncio.Task | None:
        return self._pending

    def ordered_mechanics(self) -> list[MechanicQueue]:
        position = {mid: i for i, mid in enumerate(self.mechanic_order)}
        return sorted(self.board.mechanics, key=lambda q: position.get(q.id, len(position)))

    async def load(self) -> Notification | None:
        """Full load. Unlike ``reload``, the mechanic card order is rebuilt from the
        default sort, discarding any arrangement made earlier in the session.
        """
        self.loaded = False
        return await self.reload()

    async def reload(self) -> Notification | None:
        """Fetch every mechanic queue, normalize ranks, persist the differences."""
        try:
            queues = await self._store.list_work_orders_grouped_by_mechanic()
        except Exception:
            logger.exception("Planning board reload failed")
            return Notification.error(
                "Could not load the planning board",
                "Check the database connection and try again.",
            )

        board, changes = normalize_board(PlanningBoard(tuple(queues)))
        self.board = board
        self._merge_mechanic_order(board)
        self.loaded = True

        self.last_normalization = BatchResult(0, 0)
        if changes:
            result = await self._persist_ranks(changes)
            self.last_normalization = result
            if result.outcome is not Outcome.SUCCESS:
                logger.warning(
                    "Normalization saved %d of %d execution orders", result.succeeded, result.total,
                )

        if self._on_reload is not None:
            try:
                await self._on_reload(board)
            except Exception:
                logger.exception("Planning reload listener failed")
        return None

    def _merge_mechanic_order(self, board: PlanningBoard) -> None:
        if not self.loaded:
            self.mechanic_order = default_mechanic_order(board)
            return
        present = {q.id for q in board.mechanics}
        kept = [mid for mid in self.mechanic_order if mid in present]
        added = [mid for mid in default_mechanic_order(board) if mid not in kept]
        self.mechanic_order = kept + added

    async def _persist_ranks(self, changes: Sequence[RankChange]) -> BatchResult:
        results = await asyncio.gather(
            *(self._store.update_work_order_execution_order(c.order_id, c.rank) for c in changes),
            return_exceptions=True,
        )
        succeeded = 0
        for change, result in zip(changes, results):
            if result is True:
                succeeded += 1
            elif isinstance(result, BaseException):
                logger.error("Execution order update for %s raised: %r", change.order_id, result)
            else:
                logger.warning("Execution order update for %s was rejected", change.order_id)
        return BatchResult(succeeded, len(changes))

    async def reorder(self, mechanic_id: str, order_id: str, over_order_id: str) -> Notification:
        """Drop ``order_id`` onto the position of ``over_order_id`` in the same queue."""
        try:
            queue = self.board.mechanic(mechanic_id)
            if queue is None:
                raise PlanningValidationError(f"Mechanic not found: {mechanic_id}")
            ids = [o.id for o in queue.active_orders]
            if order_id not in ids or over_order_id not in ids:
                raise PlanningValidationError(
                    f"Orders {order_id} / {over_order_id} are not in {queue.name}'s active queue"
                )
            if order_id == over_order_id:
                raise PlanningValidationError("Order dropped on itself")
            board, changes = reorder_queue(
                self.board, mechanic_id, ids.index(order_id), ids.index(over_order_id),
            )
        except PlanningValidationError as e:
            logger.warning("Reorder aborted: %s", e)
            return Notification.error("Could not reorder orders", str(e))

        self.board = board
        result = await self._persist_ranks(changes)

        if result.succeeded > 0:
            self.schedule_reload()

        if result.outcome is Outcome.SUCCESS:
            logger.info("Reordered %s: %d ranks saved", queue.name, result.total)
            return Notification.success(
                "Orders reordered", f"The order sequence was updated for {queue.name}",
            )
        if result.outcome is Outcome.PARTIAL:
            return Notification.partial(
                "Orders partially reordered",
                f"{result.succeeded} of {result.total} orders were updated",
            )
        await self.reload()
        return Notification.error("Failed to reorder orders", "The new order could not be saved. Try again.")

    async def reassign(self, order_id: str, to_mechanic_id: str) -> Notification:
        """Move an order to another mechanic's queue."""
        try:
            board, moved = reassign_order(self.board, order_id, to_mechanic_id)
        except PlanningValidationError as e:
            logger.warning("Reassignment aborted: %s", e)
            return Notification.error("Could not move order", str(e))

        to_queue = board.mechanic(to_mechanic_id)
        self.board = board
        try:
            ok = await self._store.reassign_work_order_mechanic(
                order_id, to_queue.id, moved.mechanic_info,
            )
        except Exception:
            logger.exception("Reassigning %s to %s raised", order_id, to_mechanic_id)
            ok = False

        if ok:
            logger.info("Order %s moved to %s", moved.number, to_queue.name)
            self.schedule_reload()
            return Notification.success(
                "Order moved", f"Order {moved.number} was transferred to {to_queue.name}",
            )
        await self.reload()
        return Notification.error("Failed to move order", "The order could not be transferred. Try again.")

    def move_mechanic(self, mechanic_id: str, over_id: str) -> Notification:
        """Reposition a mechanic card. Session-local; nothing is persisted."""
        if mechanic_id == over_id:
            return Notification.error("Could not reorganize mechanics", "Card dropped on itself")
        try:
            self.mechanic_order = move_mechanic(self.mechanic_order, mechanic_id, over_id)
        except PlanningValidationError as e:
            logger.warning("Mechanic card move aborted: %s", e)
            return Notification.error("Could not reorganize mechanics", str(e))
        return Notification.success("Mechanics reorganized", "The mechanic order was updated.")

    def schedule_reload(self) -> asyncio.Task:
        """Reconcile with the store after ``reconcile_delay``; a newer call supersedes."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._delayed_reload())
        return self._pending

    async def _delayed_reload(self) -> None:
        await asyncio.sleep(self.reconcile_delay)
        # Superseding only cancels the wait; store calls already issued complete.
        await asyncio.shield(self.reload())

    async def aclose(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
            try:
                await self._pending
            except asyncio.CancelledError:
                pass
        self._pending = None


class PlanningSessions:
    """In-memory planning sessions keyed by operator session id."""

    def __init__(
        self,
        store: PlanningStore,
        reconcile_delay: float = 1.0,
        listener_factory: Callable[[str], ReloadListener] | None = None,
    ):
        self.store = store
        self.reconcile_delay = reconcile_delay
        self._listener_factory = listener_factory
        self._sessions: dict[str, PlanningSession] = {}

    def get(self, key: str) -> PlanningSession:
        session = self._sessions.get(key)
        if session is None:
            listener = self._listener_factory(key) if self._listener_factory else None
            session = PlanningSession(self.store, self.reconcile_delay, on_reload=listener)
            self._sessions[key] = session
        return session

    async def discard(self, key: str) -> None:
        session = self._sessions.pop(key, None)
        if session is not None:
            await session.aclose()

    async def close_all(self) -> None:
        for key in list(self._sessions):
            await self.discard(key)
