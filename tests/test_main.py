from collections.abc import Generator
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from pytest_assume.plugin import assume

from memo.helpers.config import CONFIG
from memo.helpers.config_models.notification import MemoryGatewayModel
from memo.helpers.config_models.store import MemoryModel, ModeEnum
from memo.main import api
from memo.persistence.memory_gateway import MemoryGateway

SETTINGS = {
    "dailyTime": "08:30:00",
    "isEnabled": True,
    "notificationType": "each_item",
    "scheduleType": "daily",
    "selectedWeekdays": [],
}


def _reset_config() -> None:
    """
    Start from an empty store and no pending triggers.
    """
    CONFIG.store.mode = ModeEnum.MEMORY
    CONFIG.store.memory = MemoryModel()
    CONFIG.notification.gateway.memory = MemoryGatewayModel()


@pytest.fixture
def client() -> Generator[TestClient]:
    _reset_config()
    with TestClient(api) as client:
        yield client


def _gateway() -> MemoryGateway:
    return api.state.gateway


def test_health(client: TestClient) -> None:
    assert client.get("/health/liveness").status_code == 200

    res = client.get("/health/readiness")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"
    assert {check["id"] for check in res.json()["checks"]} == {"gateway", "store"}


def test_default_list(client: TestClient) -> None:
    res = client.get("/lists")

    assert res.status_code == 200
    data = res.json()
    assert [list_["name"] for list_ in data["lists"]] == ["Reminders"]
    assert data["selectedListId"] == data["lists"][0]["id"]


def test_list_lifecycle(client: TestClient) -> None:
    res = client.post(
        "/lists",
        json={"name": "Groceries", "notificationSettings": SETTINGS},
    )
    assert res.status_code == 201
    groceries = res.json()
    assume(groceries["name"] == "Groceries")
    assume(groceries["notificationSettings"]["selectedWeekdays"] == [1, 2, 3, 4, 5, 6, 7])
    list_id = groceries["id"]

    res = client.put(f"/lists/{list_id}", json={"name": "Food"})
    assert res.status_code == 200
    assert res.json()["name"] == "Food"
    assert res.json()["notificationSettings"]["dailyTime"] == "08:30:00"

    res = client.put(f"/lists/{list_id}", json={"name": "   "})
    assert res.status_code == 422

    res = client.delete(f"/lists/{list_id}")
    assert res.status_code == 200
    assert [list_["name"] for list_ in res.json()["lists"]] == ["Reminders"]


def test_delete_default_guard(client: TestClient) -> None:
    default_id = client.get("/lists").json()["lists"][0]["id"]
    client.post("/lists", json={"name": "Work"})

    res = client.delete(f"/lists/{default_id}")

    assert res.status_code == 200
    assert len(res.json()["lists"]) == 2


def test_select(client: TestClient) -> None:
    default_id = client.get("/lists").json()["lists"][0]["id"]
    client.post("/lists", json={"name": "Work"})

    res = client.post(f"/lists/{default_id}/select")
    assert res.status_code == 200
    assert res.json()["selectedListId"] == default_id

    assert client.post(f"/lists/{uuid4()}/select").status_code == 404


def test_not_found(client: TestClient) -> None:
    list_id = client.get("/lists").json()["lists"][0]["id"]

    res = client.post(f"/lists/{uuid4()}/reminders", json={"title": "Milk"})
    assert res.status_code == 404
    assert res.json()["error"]["message"].startswith("List ")

    res = client.post(f"/lists/{list_id}/reminders/{uuid4()}/toggle")
    assert res.status_code == 404
    assert res.json()["error"]["message"].startswith("Reminder ")


def test_validation_error(client: TestClient) -> None:
    res = client.post("/lists", json={"notificationSettings": SETTINGS})

    assert res.status_code == 422
    assert res.json()["error"]["message"] == "Validation error"
    assert res.json()["error"]["details"]


def test_reminders_and_triggers(client: TestClient) -> None:
    """
    Reminder edits are reflected in the pending triggers.
    """
    res = client.post(
        "/lists",
        json={"name": "Groceries", "notificationSettings": SETTINGS},
    )
    list_id = res.json()["id"]

    for title in ["Milk", "Eggs", "Bread"]:
        res = client.post(f"/lists/{list_id}/reminders", json={"title": title})
        assert res.status_code == 201
    reminders = res.json()["reminders"]
    assert [reminder["title"] for reminder in reminders] == ["Milk", "Eggs", "Bread"]
    assert client.post(
        f"/lists/{list_id}/reminders", json={"title": "  "}
    ).status_code == 422

    res = client.post(f"/lists/{list_id}/reminders/{reminders[0]['id']}/toggle")
    assert res.status_code == 200
    assert res.json()["reminders"][0]["isCompleted"]

    res = client.patch(
        f"/lists/{list_id}/reminders/{reminders[1]['id']}",
        json={"title": "Free range eggs"},
    )
    assert res.status_code == 200
    assert res.json()["reminders"][1]["title"] == "Free range eggs"

    res = client.delete(f"/lists/{list_id}/reminders/{reminders[2]['id']}")
    assert res.status_code == 200
    assert len(res.json()["reminders"]) == 2

    res = client.post(f"/lists/{list_id}/notifications/reconcile")
    assert res.status_code == 200
    assume(res.json()["authorized"])
    assume(res.json()["scheduledCount"] == 1)
    triggers = _gateway().pending_triggers()
    assert [trigger.body for trigger in triggers] == ["Free range eggs"]
    assert (triggers[0].hour, triggers[0].minute, triggers[0].second) == (8, 30, 0)


def test_disable_cancels(client: TestClient) -> None:
    res = client.post(
        "/lists",
        json={"name": "Groceries", "notificationSettings": SETTINGS},
    )
    list_id = res.json()["id"]
    client.post(f"/lists/{list_id}/reminders", json={"title": "Milk"})
    client.post(f"/lists/{list_id}/notifications/reconcile")
    assert _gateway().pending_triggers()

    client.put(
        f"/lists/{list_id}",
        json={"notificationSettings": {**SETTINGS, "isEnabled": False}},
    )
    res = client.post(f"/lists/{list_id}/notifications/reconcile")

    assert res.json()["scheduledCount"] == 0
    assert _gateway().pending_triggers() == []


def test_background_jobs() -> None:
    """
    Triggers are registered in the background, shutdown waits for them.
    """
    _reset_config()
    with TestClient(api) as client:
        res = client.post(
            "/lists",
            json={
                "name": "Groceries",
                "notificationSettings": {
                    **SETTINGS,
                    "notificationType": "list_reminder",
                },
            },
        )
        list_id = res.json()["id"]
        gateway = _gateway()

    assert [trigger.identifier for trigger in gateway.pending_triggers()] == [
        f"{list_id}_list_reminder"
    ]


def test_options(client: TestClient) -> None:
    res = client.get("/notifications/options")

    assert res.status_code == 200
    data = res.json()
    assert [option["value"] for option in data["notification_types"]] == [
        "each_item",
        "list_reminder",
    ]
    assert [day["value"] for day in data["weekdays"]] == [1, 2, 3, 4, 5, 6, 7]


def test_widget(client: TestClient) -> None:
    res = client.post("/lists", json={"name": "Groceries"})
    list_id = res.json()["id"]
    res = client.post(f"/lists/{list_id}/reminders", json={"title": "Milk"})
    milk_id = res.json()["reminders"][0]["id"]
    client.post(f"/lists/{list_id}/reminders", json={"title": "Eggs"})
    client.post(f"/lists/{list_id}/reminders/{milk_id}/toggle")

    res = client.get("/widget")

    assert res.status_code == 200
    data = res.json()
    assert data["listName"] == "Groceries"
    assert data["incompleteCount"] == 1
    assert [reminder["title"] for reminder in data["reminders"]] == ["Eggs", "Milk"]


@pytest.mark.parametrize(
    "method, suffix, mutation",
    [
        pytest.param("post", "/toggle", "toggle_reminder", id="toggle"),
        pytest.param("delete", "", "delete_reminders", id="delete"),
    ],
)
def test_reminder_gone_while_queued(
    client: TestClient,
    method: str,
    suffix: str,
    mutation: str,
) -> None:
    """
    A reminder removed by an earlier queued mutation answers 404, not a server error.
    """
    list_id = client.get("/lists").json()["lists"][0]["id"]
    res = client.post(f"/lists/{list_id}/reminders", json={"title": "Milk"})
    reminder_id = res.json()["reminders"][0]["id"]

    async def _ignored(**kwargs) -> None:
        return None

    # Existence check passes, then the collection ignores the mutation
    setattr(api.state.collection, mutation, _ignored)

    res = client.request(method, f"/lists/{list_id}/reminders/{reminder_id}{suffix}")

    assert res.status_code == 404
    assert res.json()["error"]["message"] == f"Reminder {reminder_id} not found"


def test_reconcile_camel_case(client: TestClient) -> None:
    list_id = client.get("/lists").json()["lists"][0]["id"]

    res = client.post(f"/lists/{list_id}/notifications/reconcile")

    assert res.status_code == 200
    assert set(res.json()) == {
        "authorized",
        "canceledCount",
        "scheduledCount",
        "skippedCount",
    }
