"""Batch of description operations, through the processor and the /descriptions/batch route."""
import pytest
from sqlalchemy import func, select

from harvest_tracking import database
from harvest_tracking.cache import get_listing_cache
from harvest_tracking.db_actions import BatchProcessor
from harvest_tracking.db_actions.errors import AllOperationsFailedError
from harvest_tracking.model import Description, StatusEnum
from harvest_tracking.schema import serialize

MISSING_ID = "ffffffffffffffffffffffff"


def fetch(app, description_id):
    with app.app_context():
        with database.session_scope() as session:
            entry = session.get(Description, description_id)
            return (entry.description, entry.status) if entry else None


def count_descriptions(app):
    with app.app_context():
        with database.session_scope() as session:
            return session.execute(select(func.count(Description.id))).scalar_one()


def test_batch_all_succeed(client, app, seeded):
    response = client.post("/descriptions/batch", json={"operations": [
        {"type": "create", "data": {"description": "Potato", "categoryId": seeded["vegetables"], "userId": "u1"}},
        {"type": "update", "id": seeded["carrot"], "data": {"description": "Purple carrot"}},
        {"type": "delete", "id": seeded["apple"]}
    ]})
    assert response.status_code == 200
    body = response.json
    assert body["success"] is True
    assert "errors" not in body
    assert len(body["data"]) == 3

    created, updated, deleted = body["data"]
    assert created["description"] == "Potato"
    assert created["category"]["id"] == seeded["vegetables"]
    assert created["createdBy"] == "u1"
    assert created["children"] == []
    assert updated["id"] == seeded["carrot"]
    assert updated["description"] == "Purple carrot"
    assert deleted["id"] == seeded["apple"]
    assert deleted["status"] == "inactive"

    assert fetch(app, created["id"]) == ("Potato", StatusEnum.ACTIVE)
    assert fetch(app, seeded["carrot"]) == ("Purple carrot", StatusEnum.ACTIVE)
    assert fetch(app, seeded["apple"]) == ("Apple", StatusEnum.INACTIVE)


def test_batch_partial_failure(client, app, seeded):
    response = client.post("/descriptions/batch", json={"operations": [
        {"type": "create", "data": {"description": "Tomato", "categoryId": seeded["fruits"], "userId": "u1"}},
        {"type": "delete", "id": MISSING_ID}
    ]})
    assert response.status_code == 200
    body = response.json
    assert body["success"] is True
    assert len(body["data"]) == 1
    assert body["data"][0]["description"] == "Tomato"
    assert body["data"][0]["category"]["id"] == seeded["fruits"]
    assert len(body["errors"]) == 1
    assert body["errors"][0]["id"] == MISSING_ID
    assert "doesn't exist" in body["errors"][0]["error"]

    assert fetch(app, body["data"][0]["id"]) == ("Tomato", StatusEnum.ACTIVE)


def test_batch_all_failed(client, app, seeded):
    before = count_descriptions(app)
    response = client.post("/descriptions/batch", json={"operations": [
        {"type": "create", "data": {"description": "Kiwi", "categoryId": MISSING_ID, "userId": "u1"}},
        {"type": "create", "data": {"description": "CARROT", "categoryId": seeded["vegetables"], "userId": "u1"}},
        {"type": "update", "id": seeded["carrot"], "data": {"description": "tomato"}},
        {"type": "delete", "id": MISSING_ID}
    ]})
    assert response.status_code == 500
    assert response.json == {"success": False, "data": [], "error": "All operations failed"}

    assert count_descriptions(app) == before
    assert fetch(app, seeded["carrot"]) == ("Carrot", StatusEnum.ACTIVE)


def test_batch_failed_operation_is_rolled_back(client, app, seeded):
    before = count_descriptions(app)
    response = client.post("/descriptions/batch", json={"operations": [
        # Inserted then refused by the unique description per category
        {"type": "create", "data": {"description": "carrot", "categoryId": seeded["vegetables"], "userId": "u1"}},
        {"type": "update", "id": seeded["apple"], "data": {"description": "Green apple"}}
    ]})
    assert response.status_code == 200
    assert response.json["errors"] == [{
        "id": "unknown",
        "error": "Operation conflicts with existing data (duplicate description or invalid reference)"
    }]
    assert count_descriptions(app) == before
    assert fetch(app, seeded["apple"]) == ("Green apple", StatusEnum.ACTIVE)


def test_batch_operations_see_previous_ones(client, app, seeded):
    response = client.post("/descriptions/batch", json={"operations": [
        {"type": "delete", "id": seeded["tomato"]},
        {"type": "update", "id": seeded["cherry_tomato"], "data": {"status": "active"}},
        {"type": "update", "id": seeded["carrot"], "data": {"description": "Carrot 1"}},
        {"type": "update", "id": seeded["carrot"], "data": {"description": "Carrot 2"}}
    ]})
    assert response.status_code == 200
    data = response.json["data"]
    assert [d["id"] for d in data] == [seeded["tomato"], seeded["cherry_tomato"], seeded["carrot"], seeded["carrot"]]
    # Each entry is the state right after its own operation
    assert data[1]["status"] == "active"
    assert data[2]["description"] == "Carrot 1"
    assert data[3]["description"] == "Carrot 2"

    assert fetch(app, seeded["tomato"])[1] is StatusEnum.INACTIVE
    assert fetch(app, seeded["cherry_tomato"])[1] is StatusEnum.ACTIVE
    assert fetch(app, seeded["carrot"])[0] == "Carrot 2"


def test_batch_delete_cascades_one_level(client, app, seeded):
    response = client.post("/descriptions/batch", json={"operations": [
        {"type": "delete", "id": seeded["tomato"]}
    ]})
    assert response.status_code == 200
    assert "children" not in response.json["data"][0]
    assert fetch(app, seeded["cherry_tomato"])[1] is StatusEnum.INACTIVE
    assert fetch(app, seeded["sungold"])[1] is StatusEnum.ACTIVE


def test_batch_create_with_parent_and_duplicate(client, app, seeded):
    response = client.post("/descriptions/batch", json={"operations": [
        {"type": "create", "data": {"description": "Pear", "categoryId": seeded["fruits"], "userId": "u1"}},
        {"type": "create", "data": {"description": "Apple pear", "categoryId": seeded["fruits"],
                                    "userId": "u1", "parentId": seeded["apple"]}},
        {"type": "create", "data": {"description": "Pear", "categoryId": seeded["fruits"], "userId": "u2"}}
    ]})
    assert response.status_code == 200
    body = response.json
    assert [d["description"] for d in body["data"]] == ["Pear", "Apple pear"]
    assert body["data"][1]["parentId"] == seeded["apple"]
    assert body["errors"][0]["id"] == "unknown"


def test_batch_per_operation_errors(client, seeded):
    response = client.post("/descriptions/batch", json={"operations": [
        {"type": "create", "data": {"description": "Leek", "categoryId": seeded["vegetables"]}},
        {"type": "update", "id": seeded["carrot"]},
        {"type": "create", "data": {"description": "Leek", "categoryId": seeded["vegetables"],
                                    "userId": "u1", "parentId": MISSING_ID}},
        {"type": "update", "id": seeded["carrot"], "data": {"categoryId": MISSING_ID}},
        {"type": "update", "id": seeded["carrot"], "data": {"description": "TOMATO"}},
        {"type": "update", "id": seeded["carrot"], "data": {"metadata": {"color": {"type": "string", "value": "orange"}}}}
    ]})
    assert response.status_code == 200
    errors = [e["error"] for e in response.json["errors"]]
    assert errors == [
        "'userId' is required for create operations",
        "ID and data are required for update operations",
        f"Parent description with id '{MISSING_ID}' not found",
        f"Category with id '{MISSING_ID}' not found",
        f"'Description' 'TOMATO' already exists in category with id '{seeded['vegetables']}'"
    ]
    assert response.json["data"][0]["metadata"] == {"color": {"type": "string", "value": "orange"}}


def test_batch_unexpected_error(client, app, seeded, monkeypatch):
    def broken(session, description_id):
        raise RuntimeError("unexpected failure")

    before = count_descriptions(app)
    monkeypatch.setattr("harvest_tracking.db_actions.batch.populated_description", broken)
    response = client.post("/descriptions/batch", json={"operations": [
        {"type": "create", "data": {"description": "Plum", "categoryId": seeded["fruits"], "userId": "u1"}}
    ]})
    assert response.status_code == 500
    assert response.json == {
        "success": False,
        "data": None,
        "error": "Unexpected error while processing the request"
    }
    assert count_descriptions(app) == before


@pytest.mark.parametrize("operations", [
    [],
    [{"type": "create", "id": "5f9f1b9b9c9d1b2b3c4d5e6f", "data": {"description": "Leek"}}],
    [{"type": "create"}],
    [{"type": "update", "data": {"description": "Leek"}}],
    [{"type": "delete"}],
    [{"type": "archive", "id": "5f9f1b9b9c9d1b2b3c4d5e6f"}],
    [{"type": "delete", "id": "not-an-id"}],
    [{"type": "delete", "id": "5f9f1b9b9c9d1b2b3c4d5e6f"}] * 101,
])
def test_batch_shape_validation(client, app, seeded, operations):
    before = count_descriptions(app)
    response = client.post("/descriptions/batch", json={"operations": operations})
    assert response.status_code == 400
    assert response.json["success"] is False
    assert response.json["error"] == "Validation error"
    assert count_descriptions(app) == before


def test_batch_shape_message(client, app, seeded):
    response = client.post("/descriptions/batch", json={"operations": [
        {"type": "update", "id": seeded["carrot"], "data": {"description": "Leek"}},
        {"type": "delete"}
    ]})
    assert response.status_code == 400
    assert response.json["details"]["operations"] == [
        "Create operations require data but no ID, other operations require an ID"
    ]
    assert fetch(app, seeded["carrot"])[0] == "Carrot"


def test_batch_invalid_json(client):
    response = client.post("/descriptions/batch", data="{not json", content_type="application/json")
    assert response.status_code == 400
    assert response.json["error"] == "Invalid JSON data"


def test_batch_missing_operations(client):
    response = client.post("/descriptions/batch", json={"ops": []})
    assert response.status_code == 400


def test_batch_invalidates_listing(client, app, seeded):
    listing = client.get(f"/descriptions?category={seeded['fruits']}").json["data"]
    assert [d["description"] for d in listing] == ["Apple"]
    assert len(get_listing_cache(app)) == 1

    client.post("/descriptions/batch", json={"operations": [
        {"type": "create", "data": {"description": "Plum", "categoryId": seeded["fruits"], "userId": "u1"}}
    ]})
    assert len(get_listing_cache(app)) == 0

    listing = client.get(f"/descriptions?category={seeded['fruits']}").json["data"]
    assert sorted(d["description"] for d in listing) == ["Apple", "Plum"]


def test_batch_max_operations_from_config(app, client, seeded):
    app.config["BATCH_MAX_OPERATIONS"] = 1
    response = client.post("/descriptions/batch", json={"operations": [
        {"type": "delete", "id": seeded["carrot"]},
        {"type": "delete", "id": seeded["apple"]}
    ]})
    assert response.status_code == 400


# Processor without an application

def test_processor_results(storage, seeded_db):
    result = BatchProcessor(storage).process([
        {"type": "update", "id": seeded_db["carrot"], "data": {"description": "Carrot 1"}},
        {"type": "delete", "id": MISSING_ID}
    ])
    assert [r["description"] for r in result["DB_ACTION_OUTPUT"]] == ["Carrot 1"]
    assert result["DB_ACTION_ERROR"][0]["id"] == MISSING_ID

    with storage.session_scope() as session:
        assert session.get(Description, seeded_db["carrot"]).description == "Carrot 1"


def test_processor_all_failed(storage, seeded_db):
    processor = BatchProcessor(storage)
    with pytest.raises(AllOperationsFailedError):
        processor.process([
            {"type": "update", "id": seeded_db["carrot"], "data": {"description": "tomato"}},
            {"type": "delete", "id": MISSING_ID}
        ])

    with storage.session_scope() as session:
        assert session.get(Description, seeded_db["carrot"]).description == "Carrot"


def test_processor_unexpected_error_rolls_back(storage, seeded_db):
    calls = []

    def serializer(obj, include_relationships=False):
        calls.append(obj.id)
        if len(calls) == 2:
            raise RuntimeError("serializer failure")
        return serialize(obj, include_relationships=include_relationships)

    processor = BatchProcessor(storage, serializer=serializer)
    with pytest.raises(RuntimeError):
        processor.process([
            {"type": "update", "id": seeded_db["carrot"], "data": {"description": "Carrot 1"}},
            {"type": "update", "id": seeded_db["apple"], "data": {"description": "Apple 1"}}
        ])

    with storage.session_scope() as session:
        assert session.get(Description, seeded_db["carrot"]).description == "Carrot"
        assert session.get(Description, seeded_db["apple"]).description == "Apple"


def test_processor_status_update_cascades(storage, seeded_db):
    BatchProcessor(storage).process([
        {"type": "update", "id": seeded_db["cherry_tomato"], "data": {"status": StatusEnum.INACTIVE}}
    ])
    with storage.session_scope() as session:
        assert session.get(Description, seeded_db["sungold"]).status is StatusEnum.INACTIVE
        assert session.get(Description, seeded_db["tomato"]).status is StatusEnum.ACTIVE
