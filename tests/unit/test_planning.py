import asyncio
from dataclasses import replace

import pytest

from fleetshop.errors import PlanningValidationError
from fleetshop.services.planning import (
    BatchResult,
    MechanicQueue,
    Outcome,
    PlannedOrder,
    PlanningBoard,
    PlanningSession,
    PlanningSessions,
    default_mechanic_order,
    mechanic_label,
    mechanic_name_from_label,
    move_item,
    move_mechanic,
    normalize_board,
    normalize_queue,
    number_suffix,
    reassign_order,
    reorder_queue,
)


def po(id, number, rank=None, status="Em Serviço", mechanic="m1"):
    return PlannedOrder(id=id, number=number, status=status, mechanic_id=mechanic, execution_order=rank)


def ranks(orders):
    return [(o.id, o.execution_order) for o in orders]


class FakeStore:
    """Planning store double; applies successful writes to its own queues."""

    def __init__(self, queues, fail_ids=(), reassign_ok=True):
        self.queues = list(queues)
        self.fail_ids = set(fail_ids)
        self.reassign_ok = reassign_ok
        self.rank_calls = []
        self.reassign_calls = []
        self.list_calls = 0

    async def list_work_orders_grouped_by_mechanic(self):
        self.list_calls += 1
        return list(self.queues)

    async def update_work_order_execution_order(self, order_id, rank):
        self.rank_calls.append((order_id, rank))
        if order_id in self.fail_ids:
            return False
        self.queues = [
            replace(q, orders=tuple(
                replace(o, execution_order=rank) if o.id == order_id else o for o in q.orders
            ))
            for q in self.queues
        ]
        return True

    async def reassign_work_order_mechanic(self, order_id, mechanic_id, label):
        self.reassign_calls.append((order_id, mechanic_id, label))
        if not self.reassign_ok:
            return False
        moved = None
        queues = []
        for q in self.queues:
            kept = []
            for o in q.orders:
                if o.id == order_id:
                    moved = replace(o, mechanic_id=mechanic_id, mechanic_info=label, execution_order=None)
                else:
                    kept.append(o)
            queues.append(replace(q, orders=tuple(kept)))
        self.queues = [
            replace(q, orders=q.orders + (moved,)) if q.id == mechanic_id else q for q in queues
        ]
        return True


def abcd_board():
    queue = MechanicQueue("m1", "Ana", (po("A", "OS-1", 1), po("B", "OS-2", 2), po("C", "OS-3", 3), po("D", "OS-4", 4)))
    other = MechanicQueue("m2", "Bruno", (po("E", "OS-5", 1, mechanic="m2"),))
    return PlanningBoard((queue, other))


# ── Labels ───────────────────────────────────────────────

def test_number_suffix():
    assert number_suffix("OS-250010") == 250010
    assert number_suffix("OS-2") == 2
    assert number_suffix("sem número") == 0


def test_mechanic_label_round_trip():
    assert mechanic_label("João Silva", "01H") == "João Silva (01H)"
    assert mechanic_name_from_label("João Silva (01H)") == "João Silva"
    assert mechanic_name_from_label("Sem id") == "Sem id"


# ── Normalization ────────────────────────────────────────

def test_unranked_orders_sort_by_numeric_suffix():
    ranked, _ = normalize_queue([po("x", "OS-10"), po("y", "OS-2")])
    assert [o.number for o in ranked] == ["OS-2", "OS-10"]
    assert ranks(ranked) == [("y", 1), ("x", 2)]


def test_normalization_is_dense():
    ranked, _ = normalize_queue([po("a", "OS-7", 5), po("b", "OS-3"), po("c", "OS-9", 2), po("d", "OS-1", 0)])
    assert sorted(o.execution_order for o in ranked) == [1, 2, 3, 4]
    # Ranked first (2, 5), then unranked by number (OS-1, OS-3).
    assert [o.id for o in ranked] == ["c", "a", "d", "b"]


def test_normalization_is_idempotent():
    orders = [po("a", "OS-7", 5), po("b", "OS-3"), po("c", "OS-9", 2)]
    once, _ = normalize_queue(orders)
    twice, changes = normalize_queue(once)
    assert ranks(once) == ranks(twice)
    assert changes == []


def test_normalization_writes_only_changed_ranks():
    _, changes = normalize_queue([po("a", "OS-1", 1), po("b", "OS-2", 3), po("c", "OS-3", 4)])
    assert [(c.order_id, c.previous, c.rank) for c in changes] == [("b", 3, 2), ("c", 4, 3)]


def test_normalization_excludes_closed_orders():
    board = PlanningBoard((MechanicQueue("m1", "Ana", (
        po("a", "OS-1", 1),
        po("b", "OS-2", 2, status="Finalizado"),
        po("c", "OS-3", 3, status="Concluída"),
        po("d", "OS-4", 4),
    )),))
    normalized, changes = normalize_board(board)
    assert ranks(normalized.mechanics[0].orders) == [("a", 1), ("d", 2)]
    assert [c.order_id for c in changes] == ["d"]


# ── Reorder / reassignment ───────────────────────────────

def test_move_item():
    assert move_item(["A", "B", "C", "D"], 0, 2) == ["B", "C", "A", "D"]
    assert move_item(["A", "B", "C", "D"], 3, 0) == ["D", "A", "B", "C"]


def test_reorder_moves_first_to_third():
    board, changes = reorder_queue(abcd_board(), "m1", 0, 2)
    queue = board.mechanic("m1")
    assert ranks(queue.orders) == [("B", 1), ("C", 2), ("A", 3), ("D", 4)]
    assert {c.order_id: c.rank for c in changes} == {"B": 1, "C": 2, "A": 3}
    # Other queues and the input snapshot are untouched.
    assert board.mechanic("m2") == abcd_board().mechanic("m2")
    assert ranks(abcd_board().mechanic("m1").orders)[0] == ("A", 1)


def test_reorder_rejects_bad_indices():
    with pytest.raises(PlanningValidationError):
        reorder_queue(abcd_board(), "m1", 0, 4)
    with pytest.raises(PlanningValidationError):
        reorder_queue(abcd_board(), "nobody", 0, 1)


def test_reassign_transfers_exactly_one_order():
    board, moved = reassign_order(abcd_board(), "B", "m2")
    m1, m2 = board.mechanic("m1"), board.mechanic("m2")
    assert [o.id for o in m1.orders] == ["A", "C", "D"]
    assert [o.id for o in m2.orders] == ["E", "B"]
    assert moved.mechanic_id == "m2"
    assert moved.mechanic_info == "Bruno (m2)"
    all_ids = [o.id for q in board.mechanics for o in q.orders]
    assert len(all_ids) == len(set(all_ids)) == 5


def test_reassign_validation():
    with pytest.raises(PlanningValidationError):
        reassign_order(abcd_board(), "B", "m1")
    with pytest.raises(PlanningValidationError):
        reassign_order(abcd_board(), "Z", "m2")
    with pytest.raises(PlanningValidationError):
        reassign_order(abcd_board(), "B", "m9")


def test_default_mechanic_order_most_loaded_first():
    assert default_mechanic_order(abcd_board()) == ["m1", "m2"]


def test_move_mechanic():
    assert move_mechanic(["m1", "m2", "m3"], "m3", "m1") == ["m3", "m1", "m2"]
    with pytest.raises(PlanningValidationError):
        move_mechanic(["m1"], "m1", "m7")


def test_batch_outcomes():
    assert BatchResult(3, 3).outcome is Outcome.SUCCESS
    assert BatchResult(2, 3).outcome is Outcome.PARTIAL
    assert BatchResult(0, 3).outcome is Outcome.FAILURE


# ── Session ──────────────────────────────────────────────

async def test_load_normalizes_and_persists_differences():
    store = FakeStore([MechanicQueue("m1", "Ana", (po("x", "OS-10"), po("y", "OS-2", 1)))])
    session = PlanningSession(store, reconcile_delay=0)
    assert await session.load() is None
    assert store.rank_calls == [("x", 2)]
    assert session.last_normalization == BatchResult(1, 1)
    assert session.mechanic_order == ["m1"]


async def test_reorder_success_schedules_reload():
    store = FakeStore(abcd_board().mechanics)
    session = PlanningSession(store, reconcile_delay=0)
    await session.load()

    note = await session.reorder("m1", "A", "C")
    assert note.level == "success"
    assert sorted(store.rank_calls) == [("A", 3), ("B", 1), ("C", 2)]
    assert ranks(session.board.mechanic("m1").orders) == [("B", 1), ("C", 2), ("A", 3), ("D", 4)]

    await session.pending_reload
    assert store.list_calls == 2
    assert [o.id for o in session.board.mechanic("m1").orders] == ["B", "C", "A", "D"]


async def test_reorder_partial_failure_reports_counts_and_reloads():
    store = FakeStore(abcd_board().mechanics, fail_ids={"A"})
    session = PlanningSession(store, reconcile_delay=0)
    await session.load()

    note = await session.reorder("m1", "A", "C")
    assert note.level == "partial"
    assert "2 of 3" in note.description
    assert session.pending_reload is not None

    await session.pending_reload
    assert store.list_calls == 2


async def test_reorder_total_failure_reloads_immediately():
    store = FakeStore(abcd_board().mechanics, fail_ids={"A", "B", "C"})
    session = PlanningSession(store, reconcile_delay=60)
    await session.load()

    note = await session.reorder("m1", "A", "C")
    assert note.level == "error"
    assert store.list_calls == 2
    assert session.pending_reload is None
    assert [o.id for o in session.board.mechanic("m1").orders] == ["A", "B", "C", "D"]


async def test_reorder_validation_makes_no_store_calls():
    store = FakeStore(abcd_board().mechanics)
    session = PlanningSession(store, reconcile_delay=0)
    await session.load()

    note = await session.reorder("m1", "A", "E")
    assert note.level == "error"
    assert store.rank_calls == []
    assert session.pending_reload is None


async def test_reassign_applies_optimistic_patch_then_reconciles():
    store = FakeStore(abcd_board().mechanics)
    session = PlanningSession(store, reconcile_delay=0)
    await session.load()

    note = await session.reassign("B", "m2")
    assert note.level == "success"
    assert store.reassign_calls == [("B", "m2", "Bruno (m2)")]
    assert [o.id for o in session.board.mechanic("m2").orders] == ["E", "B"]

    await session.pending_reload
    assert ranks(session.board.mechanic("m1").orders) == [("A", 1), ("C", 2), ("D", 3)]
    assert ranks(session.board.mechanic("m2").orders) == [("E", 1), ("B", 2)]


async def test_reassign_failure_discards_patch():
    store = FakeStore(abcd_board().mechanics, reassign_ok=False)
    session = PlanningSession(store, reconcile_delay=60)
    await session.load()

    note = await session.reassign("B", "m2")
    assert note.level == "error"
    assert "B" in [o.id for o in session.board.mechanic("m1").orders]
    assert [o.id for o in session.board.mechanic("m2").orders] == ["E"]


async def test_schedule_reload_supersedes_pending():
    session = PlanningSession(FakeStore([]), reconcile_delay=60)
    first = session.schedule_reload()
    second = session.schedule_reload()
    with pytest.raises(asyncio.CancelledError):
        await first
    await session.aclose()
    assert second.cancelled()


async def test_move_mechanic_is_local_only():
    store = FakeStore(abcd_board().mechanics)
    session = PlanningSession(store, reconcile_delay=0)
    await session.load()

    note = session.move_mechanic("m2", "m1")
    assert note.level == "success"
    assert session.mechanic_order == ["m2", "m1"]
    assert [q.id for q in session.ordered_mechanics()] == ["m2", "m1"]
    assert store.rank_calls == [] and store.reassign_calls == []

    # Kept across reloads within the session.
    await session.reload()
    assert session.mechanic_order == ["m2", "m1"]

    # A full load goes back to the default sort.
    await session.load()
    assert session.mechanic_order == ["m1", "m2"]


async def test_reload_failure_is_reported():
    class BrokenStore(FakeStore):
        async def list_work_orders_grouped_by_mechanic(self):
            raise RuntimeError("backend down")

    session = PlanningSession(BrokenStore([]))
    note = await session.reload()
    assert note.level == "error"
    assert session.loaded is False


async def test_reload_notifies_listener():
    seen = []

    async def listener(board):
        seen.append(board)

    session = PlanningSession(FakeStore(abcd_board().mechanics), on_reload=listener)
    await session.load()
    assert len(seen) == 1
    assert seen[0] is session.board


async def test_sessions_registry():
    sessions = PlanningSessions(FakeStore([]), reconcile_delay=0)
    a = sessions.get("s1")
    assert sessions.get("s1") is a
    assert sessions.get("s2") is not a
    await sessions.discard("s1")
    assert sessions.get("s1") is not a
    await sessions.close_all()
