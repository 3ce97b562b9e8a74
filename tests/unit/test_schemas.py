import pytest
from pydantic import ValidationError

from fleetshop.schemas import (
    KmUpdate,
    MechanicQueueRead,
    ObservationCreate,
    TransitionRequest,
    WorkOrderCreate,
    WSMessage,
)
from fleetshop.services.planning import MechanicQueue, PlannedOrder
from fleetshop.services.status_machine import TransitionKind, WorkOrderStatus


def test_work_order_create_defaults():
    body = WorkOrderCreate(vehicle_info="ABC-1234")
    assert body.status is WorkOrderStatus.AWAITING_MECHANIC
    assert body.priority == "Média"


def test_work_order_create_rejects_unknown_status():
    with pytest.raises(ValidationError):
        WorkOrderCreate(status="Concluída")


def test_transition_request_parses_kind():
    body = TransitionRequest(kind="send_to_external_service", supplier="Retífica Sul", service="Retífica do motor")
    assert body.kind is TransitionKind.SEND_TO_EXTERNAL_SERVICE
    assert body.target is None


def test_observation_requires_text():
    with pytest.raises(ValidationError):
        ObservationCreate(text="", department="oficina")


def test_km_update_rejects_negative():
    with pytest.raises(ValidationError):
        KmUpdate(km=-1)


def test_mechanic_queue_from_snapshot():
    queue = MechanicQueue("m1", "Ana", (PlannedOrder("o1", "OS-250001", "Em Serviço", "m1", execution_order=1),))
    read = MechanicQueueRead.model_validate(queue)
    assert read.orders[0].number == "OS-250001"
    assert read.orders[0].execution_order == 1


def test_ws_message_construction():
    msg = WSMessage(event="planning_reloaded", data={"mechanics": []})
    assert msg.event == "planning_reloaded"
    assert msg.data["mechanics"] == []
